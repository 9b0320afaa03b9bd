"""Main SimpleIPAM Textual Application."""

from textual.app import App
from textual.binding import Binding
from textual import work

from simpleipam.config import Config
from simpleipam.coordinator import MutationCoordinator
from simpleipam.ipam_client import IPAMClient
from simpleipam.session import SessionManager
from simpleipam.workspace import Workspace


class SimpleIPAMApp(App):
    """SimpleIPAM - subnet and hostname management TUI."""

    TITLE = "SimpleIPAM"
    SUB_TITLE = "IP Address Management"
    CSS_PATH = "app.tcss"

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True, priority=True),
        Binding("question_mark", "help_screen", "Help", show=True),
    ]

    def __init__(self, config: Config, session: SessionManager | None = None):
        super().__init__()
        self.config = config
        self.session = session or SessionManager.from_config(config)
        self.client = IPAMClient(config, self.session)
        self.workspace = Workspace(self.client)
        self.coordinator = MutationCoordinator(self.workspace)

    def on_mount(self):
        if self.session.ready:
            self.show_subnets()
        else:
            self.show_login()

    def _pop_to_base(self):
        while len(self.screen_stack) > 1:
            self.pop_screen()

    def show_login(self, message: str = ""):
        from simpleipam.screens.login_screen import LoginScreen
        self._pop_to_base()
        self.push_screen(LoginScreen(message))

    def show_subnets(self):
        from simpleipam.screens.subnet_list import SubnetListScreen
        self._pop_to_base()
        self.push_screen(SubnetListScreen())

    def session_expired(self, message: str):
        """Called when a request could not be authorized."""
        self.workspace.reset()
        self.coordinator.reset()
        self.show_login(message or "Session expired; please log in again")

    def logout(self):
        self.workspace.reset()
        self.coordinator.reset()
        if not self.session.enabled:
            self.show_subnets()
            return
        self._end_session()

    @work(thread=True, exclusive=True, group="session")
    def _end_session(self):
        """Tell the identity provider the session is over."""
        self.session.reset()
        self.call_from_thread(self.show_login)

    def action_help_screen(self):
        """Show help screen."""
        from simpleipam.screens.help_screen import HelpScreen
        self.push_screen(HelpScreen())
