"""Address view of one subnet.

Shows every address of the subnet's CIDR block, reconciled against the
records the backend holds, and lets the operator assign or clear
hostnames.  Background results are only rendered while this screen's
subnet is still the one in view.
"""

from __future__ import annotations

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import Header, Footer, Static, DataTable
from textual.containers import Container
from textual import work

from rich.markup import escape
from rich.text import Text

from simpleipam.coordinator import MutationInFlightError
from simpleipam.models import AddressSlot
from simpleipam.reconcile import ViewStatus
from simpleipam.session import SessionExpiredError
from simpleipam.state import Failed, InFlight, Loading
from simpleipam.screens.modals import ConfirmScreen, HostnameInputScreen


class SubnetDetailScreen(Screen):
    """Every address of the selected subnet with its hostname."""

    BINDINGS = [
        Binding("escape", "go_back", "Back", show=True),
        Binding("backspace", "go_back", "Back", show=False),
        Binding("e", "edit_hostname", "Edit", show=True),
        Binding("x", "clear_hostname", "Clear", show=True),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("D", "delete_subnet", "Delete subnet", show=True),
        Binding("l", "logout", "Log out", show=True),
    ]

    def __init__(self):
        super().__init__()
        self._subnet = None
        self._generation = -1
        self._slots: list[AddressSlot] = []

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="subnet-detail-container"):
            yield Static("", id="subnet-title", markup=True)
            yield Static("", id="subnet-notice", markup=True)
            yield DataTable(id="address-table")
            yield Static("", id="address-status-bar", markup=True)
        yield Footer()

    def on_mount(self):
        workspace = self.app.workspace
        self._subnet = workspace.selected
        self._generation = workspace.generation

        table = self.query_one("#address-table", DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_column(Text("IP", style="bold cyan"), key="ip", width=18)
        table.add_column(Text("Hostname", style="bold cyan"), key="hostname", width=32)
        table.add_column(Text("Updated", style="bold cyan"), key="updated", width=21)
        table.add_column(Text("", style="bold"), key="state")
        self._render_view()
        self.load_addresses()

    def _is_current(self) -> bool:
        return self._subnet is not None and self.app.workspace.is_viewing(
            self._subnet.id, self._generation,
        )

    # ------------------------------------------------------------------
    # Data loading
    # ------------------------------------------------------------------

    @work(thread=True, exclusive=True, group="addresses")
    def load_addresses(self):
        self.app.call_from_thread(self._render_view)
        try:
            self.app.workspace.load_addresses()
        except SessionExpiredError as e:
            self.app.call_from_thread(self.app.session_expired, str(e))
            return
        self.app.call_from_thread(self._render_view)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_view(self):
        if not self._is_current():
            return
        workspace = self.app.workspace
        coordinator = self.app.coordinator
        subnet = self._subnet
        view = workspace.address_view()
        if view is None:
            return

        self.query_one("#subnet-title", Static).update(
            f"  [bold]{escape(subnet.cidr)}[/bold]  [dim]|[/dim]  "
            f"[bold cyan]{len(view.slots)}[/bold cyan] addresses  [dim]|[/dim]  "
            f"{escape(subnet.description) or '[dim]No description[/dim]'}"
        )

        notices = []
        state = workspace.records_state
        if isinstance(state, Loading):
            notices.append("[dim]Loading IPs...[/dim]")
        elif isinstance(state, Failed):
            notices.append(f"[red]Failed to load IPs: {escape(state.reason)}[/red]")
        if view.status is ViewStatus.TOO_LARGE:
            notices.append(
                f"[red]Cannot render IPs for this subnet: {view.size} addresses is too many.[/red]"
            )
        elif view.status is ViewStatus.INVALID_CIDR:
            notices.append(f"[red]Cannot render IPs for this subnet: {escape(view.error)}[/red]")
        self.query_one("#subnet-notice", Static).update("\n".join(notices))

        table = self.query_one("#address-table", DataTable)
        cursor_row = table.cursor_row
        table.clear()
        self._slots = list(view.slots)
        for slot in self._slots:
            record = slot.record
            hostname = record.hostname if record is not None else ""
            if slot.value:
                value_text = Text(slot.value, style="bold" if slot.value == hostname else "yellow")
            else:
                value_text = Text("(unset)", style="dim")

            mutation = coordinator.address_state(subnet.id, slot.address)
            if isinstance(mutation, InFlight):
                state_text = Text("Saving...", style="cyan")
            elif isinstance(mutation, Failed):
                state_text = Text(f"Failed: {mutation.reason}", style="red")
            elif slot.value != hostname:
                state_text = Text("unsaved", style="yellow")
            else:
                state_text = Text("")

            table.add_row(
                Text(slot.address, style="dim" if slot.reserved else ""),
                value_text,
                Text(record.updated_display if record is not None else "", style="dim"),
                state_text,
                key=slot.address,
            )
        if self._slots:
            table.move_cursor(row=min(cursor_row, len(self._slots) - 1))

    def _set_status(self, text: str) -> None:
        self.query_one("#address-status-bar", Static).update(text)

    def _get_selected_slot(self) -> Optional[AddressSlot]:
        table = self.query_one("#address-table", DataTable)
        row = table.cursor_row
        if 0 <= row < len(self._slots):
            return self._slots[row]
        return None

    # ------------------------------------------------------------------
    # Actions: hostname edits
    # ------------------------------------------------------------------

    def on_data_table_row_selected(self, event: DataTable.RowSelected):
        self.action_edit_hostname()

    def action_edit_hostname(self):
        slot = self._get_selected_slot()
        if slot is None:
            return
        address = slot.address

        def on_result(value: Optional[str]) -> None:
            if value is None:
                return
            self.app.workspace.set_draft(address, value)
            self._set_status(f"Saving {address}...")
            self._save_hostname(address, value)

        self.app.push_screen(
            HostnameInputScreen(address, slot.value, self._subnet.cidr),
            callback=on_result,
        )

    def action_clear_hostname(self):
        slot = self._get_selected_slot()
        if slot is None or slot.record is None:
            return
        address = slot.address

        def on_confirm(confirmed: bool) -> None:
            if confirmed:
                self._set_status(f"Removing {address}...")
                self._delete_address(address)

        self.app.push_screen(
            ConfirmScreen(
                f"Remove the record for [bold]{address}[/bold] "
                f"({escape(slot.record.hostname) or 'no hostname'})?",
                title="Clear address",
            ),
            callback=on_confirm,
        )

    @work(thread=True)
    def _save_hostname(self, address: str, value: str):
        self._mutate(address, lambda: self.app.coordinator.save_hostname(address, value))

    @work(thread=True)
    def _delete_address(self, address: str):
        self._mutate(address, lambda: self.app.coordinator.delete_address(address))

    def _mutate(self, address: str, call) -> None:
        """Run a coordinator call from a worker thread and report back."""
        self.app.call_from_thread(self._render_view)
        try:
            ok = call()
        except MutationInFlightError:
            self.app.call_from_thread(
                self._set_status, f"[yellow]{address} is already being saved[/yellow]",
            )
            return
        except SessionExpiredError as e:
            self.app.call_from_thread(self.app.session_expired, str(e))
            return

        if ok:
            message = f"[green]Saved {address}[/green]"
        else:
            state = self.app.coordinator.address_state(self._subnet.id, address)
            reason = state.reason if isinstance(state, Failed) else "unknown error"
            message = f"[red]Save failed: {escape(reason)}[/red]"
        self.app.call_from_thread(self._render_view)
        self.app.call_from_thread(self._set_status, message)

    # ------------------------------------------------------------------
    # Actions: navigation / subnet
    # ------------------------------------------------------------------

    def action_refresh(self):
        self._set_status("[dim]Refreshing...[/dim]")
        self.load_addresses()

    def action_go_back(self):
        self.app.workspace.clear_selection()
        self.app.pop_screen()

    def action_logout(self):
        self.app.logout()

    def action_delete_subnet(self):
        subnet = self._subnet

        def on_confirm(confirmed: bool) -> None:
            if confirmed:
                self._set_status(f"Deleting {escape(subnet.cidr)}...")
                self._delete_subnet()

        self.app.push_screen(
            ConfirmScreen(
                f"Delete subnet [bold]{escape(subnet.cidr)}[/bold] and all of its addresses?",
                title="Delete subnet",
            ),
            callback=on_confirm,
        )

    @work(thread=True)
    def _delete_subnet(self):
        subnet = self._subnet
        try:
            ok = self.app.coordinator.delete_subnet(subnet.id)
        except MutationInFlightError:
            return
        except SessionExpiredError as e:
            self.app.call_from_thread(self.app.session_expired, str(e))
            return

        if ok:
            # The workspace already dropped the selection and its records.
            self.app.call_from_thread(self.app.pop_screen)
            return
        state = self.app.coordinator.subnet_state(subnet.id)
        reason = state.reason if isinstance(state, Failed) else "unknown error"
        self.app.call_from_thread(
            self._set_status, f"[red]Delete failed: {escape(reason)}[/red]",
        )
