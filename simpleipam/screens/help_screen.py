"""Help screen for SimpleIPAM."""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import Header, Footer, Static
from textual.containers import VerticalScroll


HELP_TEXT = """\
[bold cyan]SimpleIPAM - Subnet and Hostname Management[/bold cyan]

[bold]Global Keys[/bold]
  [bold cyan]q[/bold cyan]           Quit the application
  [bold cyan]?[/bold cyan]           Show this help screen
  [bold cyan]Escape[/bold cyan]      Go back / Close current screen

[bold]Subnets[/bold]
  [bold cyan]Enter[/bold cyan]       Open the highlighted subnet
  [bold cyan]a[/bold cyan]           Add a subnet
  [bold cyan]d[/bold cyan]           Delete the highlighted subnet
  [bold cyan]r[/bold cyan]           Refresh the subnet list
  [bold cyan]l[/bold cyan]           Log out

[bold]Subnet Addresses[/bold]
  [bold cyan]Enter / e[/bold cyan]   Edit the hostname of the highlighted address
  [bold cyan]x[/bold cyan]           Remove the record of the highlighted address
  [bold cyan]D[/bold cyan]           Delete this subnet
  [bold cyan]r[/bold cyan]           Reload addresses
  [bold cyan]↑ ↓[/bold cyan]         Navigate rows

  Saving an empty hostname for an address that has one removes its
  record.  Subnets larger than /16 are not listed address by address.

[bold]About[/bold]
  Configuration: ~/.config/simpleipam/config.yaml
  Environment:   IPAM_API_BASE, IPAM_KEYCLOAK_URL,
                 IPAM_KEYCLOAK_REALM, IPAM_KEYCLOAK_CLIENT_ID
"""


class HelpScreen(Screen):
    """Help screen showing keybindings and navigation."""

    BINDINGS = [
        Binding("escape", "go_back", "Close", show=True),
        Binding("backspace", "go_back", "Close", show=False),
        Binding("question_mark", "go_back", "Close", show=False),
    ]

    def compose(self) -> ComposeResult:
        yield Header()
        with VerticalScroll(id="help-container"):
            yield Static(HELP_TEXT, markup=True)
        yield Footer()

    def action_go_back(self):
        self.app.pop_screen()
