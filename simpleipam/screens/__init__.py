"""SimpleIPAM TUI screens."""

from simpleipam.screens.login_screen import LoginScreen
from simpleipam.screens.subnet_list import SubnetListScreen
from simpleipam.screens.subnet_detail import SubnetDetailScreen
from simpleipam.screens.help_screen import HelpScreen
from simpleipam.screens.modals import ConfirmScreen, HostnameInputScreen, SubnetInputScreen

__all__ = [
    "LoginScreen",
    "SubnetListScreen",
    "SubnetDetailScreen",
    "HelpScreen",
    "ConfirmScreen",
    "HostnameInputScreen",
    "SubnetInputScreen",
]
