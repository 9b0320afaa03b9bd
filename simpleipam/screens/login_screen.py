"""Sign-in screen for SimpleIPAM."""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import Header, Footer, Static, Input, Button, Label
from textual.containers import Container, Center, Middle
from textual import work, on

from rich.markup import escape


class LoginScreen(Screen):
    """Collect credentials and run the identity-provider handshake."""

    BINDINGS = [
        Binding("escape", "quit_app", "Quit", show=True),
    ]

    def __init__(self, message: str = ""):
        super().__init__()
        self._message = message

    def compose(self) -> ComposeResult:
        yield Header()
        with Center():
            with Middle():
                with Container(id="login-box"):
                    yield Static("[bold]Sign in[/bold]", id="login-title", markup=True)
                    yield Static(
                        f"[dim]{escape(self.app.config.auth.url)} "
                        f"(realm {escape(self.app.config.auth.realm)})[/dim]",
                        markup=True,
                    )
                    yield Label("Username:")
                    yield Input(placeholder="admin", id="login-username")
                    yield Label("Password:")
                    yield Input(placeholder="password", password=True, id="login-password")
                    yield Static("", id="login-error", markup=True)
                    yield Button("Continue", variant="primary", id="login-btn")
        yield Footer()

    def on_mount(self):
        if self._message:
            self._show_error(self._message)
        self.query_one("#login-username", Input).focus()

    @on(Button.Pressed, "#login-btn")
    def _on_login_pressed(self, event: Button.Pressed) -> None:
        self._submit()

    @on(Input.Submitted)
    def _on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "login-username":
            self.query_one("#login-password", Input).focus()
        else:
            self._submit()

    def _submit(self) -> None:
        username = self.query_one("#login-username", Input).value.strip()
        password = self.query_one("#login-password", Input).value
        if not username:
            self._show_error("Username is required")
            return
        self.query_one("#login-btn", Button).disabled = True
        self.query_one("#login-error", Static).update("[dim]Signing in...[/dim]")
        self._login(username, password)

    @work(thread=True, exclusive=True)
    def _login(self, username: str, password: str):
        """Run the login handshake in a background thread."""
        session = self.app.session
        session.reset()
        ok = session.login(username, password)
        error = session.error
        self.app.call_from_thread(self._on_login_result, ok, error)

    def _on_login_result(self, ok: bool, error: str):
        if ok:
            self.app.show_subnets()
            return
        self.query_one("#login-btn", Button).disabled = False
        self._show_error(error or "Login failed")

    def _show_error(self, error: str):
        self.query_one("#login-error", Static).update(f"[red]{escape(error)}[/red]")

    def action_quit_app(self):
        self.app.exit()
