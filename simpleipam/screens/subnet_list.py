"""Subnet list screen for SimpleIPAM."""

from __future__ import annotations

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import Header, Footer, Static, DataTable
from textual.widgets.data_table import CellDoesNotExist
from textual.containers import Container
from textual import work

from rich.markup import escape
from rich.text import Text

from simpleipam.coordinator import MutationInFlightError
from simpleipam.models import Subnet
from simpleipam.session import SessionExpiredError
from simpleipam.state import Failed, Loading
from simpleipam.screens.modals import ConfirmScreen, SubnetInputScreen


class SubnetListScreen(Screen):
    """All subnets known to the backend."""

    BINDINGS = [
        Binding("a", "add_subnet", "Add", show=True),
        Binding("d", "delete_subnet", "Delete", show=True),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("l", "logout", "Log out", show=True),
    ]

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="subnet-list-container"):
            yield Static("", id="subnet-banner", markup=True)
            yield DataTable(id="subnet-table")
            yield Static("", id="subnet-status-bar", markup=True)
        yield Footer()

    def on_mount(self):
        table = self.query_one("#subnet-table", DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_column(Text("CIDR", style="bold cyan"), key="cidr", width=20)
        table.add_column(Text("Description", style="bold cyan"), key="description", width=40)
        table.add_column(Text("Updated", style="bold cyan"), key="updated")
        self.load_subnets()

    # ------------------------------------------------------------------
    # Data loading
    # ------------------------------------------------------------------

    @work(thread=True, exclusive=True, group="subnets")
    def load_subnets(self):
        self.app.call_from_thread(self._refresh_table)
        try:
            self.app.workspace.load_subnets()
        except SessionExpiredError as e:
            self.app.call_from_thread(self.app.session_expired, str(e))
            return
        self.app.call_from_thread(self._refresh_table)

    def _refresh_table(self):
        workspace = self.app.workspace
        state = workspace.subnets_state
        banner = self.query_one("#subnet-banner", Static)
        table = self.query_one("#subnet-table", DataTable)

        subnets = workspace.subnets
        banner_text = f"  [bold]Subnets[/bold]  [dim]|[/dim]  [bold cyan]{len(subnets)}[/bold cyan] total"
        if isinstance(state, Loading):
            banner_text += "  [dim]|  Loading...[/dim]"
        elif isinstance(state, Failed):
            banner_text += f"  [dim]|[/dim]  [bold red]Failed to load: {escape(state.reason)}[/bold red]"
        banner.update(banner_text)

        table.clear()
        if not subnets:
            table.add_row(Text("No subnets yet.", style="dim"), Text(""), Text(""))
            return
        for subnet in subnets:
            table.add_row(
                Text(subnet.cidr, style="bold"),
                Text(subnet.description or "-"),
                Text(subnet.updated_display, style="dim"),
                key=str(subnet.id),
            )

    def _set_status(self, text: str) -> None:
        self.query_one("#subnet-status-bar", Static).update(text)

    def _get_selected_subnet(self) -> Optional[Subnet]:
        table = self.query_one("#subnet-table", DataTable)
        try:
            row_key = table.coordinate_to_cell_key(table.cursor_coordinate).row_key
        except CellDoesNotExist:
            return None
        return self._subnet_by_key(row_key.value)

    def _subnet_by_key(self, key: Optional[str]) -> Optional[Subnet]:
        for subnet in self.app.workspace.subnets:
            if str(subnet.id) == key:
                return subnet
        return None

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def on_data_table_row_selected(self, event: DataTable.RowSelected):
        subnet = self._subnet_by_key(event.row_key.value)
        if subnet is None:
            return
        from simpleipam.screens.subnet_detail import SubnetDetailScreen
        self.app.workspace.select_subnet(subnet)
        self.app.push_screen(SubnetDetailScreen())

    def on_screen_resume(self):
        if self.query_one("#subnet-table", DataTable).columns:
            self._refresh_table()

    def action_refresh(self):
        self._set_status("[dim]Refreshing...[/dim]")
        self.load_subnets()

    def action_logout(self):
        self.app.logout()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def action_add_subnet(self):
        self.app.push_screen(SubnetInputScreen(), callback=self._on_subnet_input)

    def _on_subnet_input(self, result: Optional[dict]) -> None:
        if result is None:
            return
        self._set_status(f"Creating {escape(result['cidr'])}...")
        self._create_subnet(result["cidr"], result["description"])

    @work(thread=True)
    def _create_subnet(self, cidr: str, description: str):
        coordinator = self.app.coordinator
        try:
            subnet = coordinator.create_subnet(cidr, description)
        except MutationInFlightError:
            self.app.call_from_thread(
                self._set_status, "[yellow]A subnet is already being created[/yellow]",
            )
            return
        except SessionExpiredError as e:
            self.app.call_from_thread(self.app.session_expired, str(e))
            return

        if subnet is None:
            state = coordinator.create_state
            reason = state.reason if isinstance(state, Failed) else "unknown error"
            self.app.call_from_thread(
                self._set_status, f"[red]Failed: {escape(reason)}[/red]",
            )
            return
        self.app.call_from_thread(self._refresh_table)
        self.app.call_from_thread(
            self._set_status, f"[green]Created {escape(subnet.cidr)}[/green]",
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def action_delete_subnet(self):
        subnet = self._get_selected_subnet()
        if subnet is None:
            return

        def on_confirm(confirmed: bool) -> None:
            if confirmed:
                self._set_status(f"Deleting {escape(subnet.cidr)}...")
                self._delete_subnet(subnet)

        self.app.push_screen(
            ConfirmScreen(
                f"Delete subnet [bold]{escape(subnet.cidr)}[/bold] and all of its addresses?",
                title="Delete subnet",
            ),
            callback=on_confirm,
        )

    @work(thread=True)
    def _delete_subnet(self, subnet: Subnet):
        coordinator = self.app.coordinator
        try:
            ok = coordinator.delete_subnet(subnet.id)
        except MutationInFlightError:
            self.app.call_from_thread(
                self._set_status, f"[yellow]{escape(subnet.cidr)} is already being deleted[/yellow]",
            )
            return
        except SessionExpiredError as e:
            self.app.call_from_thread(self.app.session_expired, str(e))
            return

        if ok:
            self.app.call_from_thread(self._refresh_table)
            self.app.call_from_thread(
                self._set_status, f"[green]Deleted {escape(subnet.cidr)}[/green]",
            )
        else:
            state = coordinator.subnet_state(subnet.id)
            reason = state.reason if isinstance(state, Failed) else "unknown error"
            self.app.call_from_thread(
                self._set_status, f"[red]Delete failed: {escape(reason)}[/red]",
            )
