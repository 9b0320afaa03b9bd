"""Modal dialogs shared by the SimpleIPAM screens."""

from __future__ import annotations

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import ModalScreen
from textual.widgets import Static, Input, Button, Label
from textual.containers import Container, Horizontal, Vertical
from textual import on


# ---------------------------------------------------------------------------
# Modal: New subnet
# ---------------------------------------------------------------------------

class SubnetInputScreen(ModalScreen[Optional[dict]]):
    """Collect a CIDR and description for a new subnet."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    def compose(self) -> ComposeResult:
        with Container(classes="modal-container"):
            with Vertical(classes="modal-box"):
                yield Static("New subnet", classes="modal-title")
                yield Static("[dim]The backend validates the CIDR as well.[/dim]", markup=True)

                yield Label("CIDR:")
                yield Input(placeholder="10.0.0.0/24", id="subnet-cidr-input")

                yield Label("Description:")
                yield Input(placeholder="Office network", id="subnet-desc-input")

                yield Static("", id="subnet-input-error", markup=True)

                with Horizontal(classes="modal-buttons"):
                    yield Button("Save", variant="primary", id="subnet-save-btn")
                    yield Button("Cancel", variant="default", id="subnet-cancel-btn")

    def on_mount(self) -> None:
        self.query_one("#subnet-cidr-input", Input).focus()

    @on(Button.Pressed, "#subnet-save-btn")
    def _on_save(self, event: Button.Pressed) -> None:
        self._try_submit()

    @on(Input.Submitted)
    def _on_submitted(self, event: Input.Submitted) -> None:
        self._try_submit()

    @on(Button.Pressed, "#subnet-cancel-btn")
    def _on_cancel(self, event: Button.Pressed) -> None:
        self.dismiss(None)

    def action_cancel(self) -> None:
        self.dismiss(None)

    def _try_submit(self) -> None:
        cidr = self.query_one("#subnet-cidr-input", Input).value.strip()
        description = self.query_one("#subnet-desc-input", Input).value.strip()
        if not cidr:
            self.query_one("#subnet-input-error", Static).update(
                "[red]CIDR is required[/red]"
            )
            return
        self.dismiss({"cidr": cidr, "description": description})


# ---------------------------------------------------------------------------
# Modal: Hostname editor
# ---------------------------------------------------------------------------

class HostnameInputScreen(ModalScreen[Optional[str]]):
    """Edit the hostname of one address.  An empty value clears it."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    def __init__(self, address: str, hostname: str = "", subnet_cidr: str = "") -> None:
        super().__init__()
        self._address = address
        self._initial_hostname = hostname
        self._subnet_cidr = subnet_cidr

    def compose(self) -> ComposeResult:
        with Container(classes="modal-container"):
            with Vertical(classes="modal-box"):
                yield Static(f"Hostname for {self._address}", classes="modal-title")
                if self._subnet_cidr:
                    yield Static(f"[dim]Subnet: {self._subnet_cidr}[/dim]", markup=True)

                yield Label("Hostname:")
                yield Input(
                    value=self._initial_hostname,
                    placeholder="(unset)",
                    id="hostname-input",
                )
                yield Static("[dim]Leave empty to clear the assignment.[/dim]", markup=True)

                with Horizontal(classes="modal-buttons"):
                    yield Button("Save", variant="primary", id="hostname-save-btn")
                    yield Button("Cancel", variant="default", id="hostname-cancel-btn")

    def on_mount(self) -> None:
        self.query_one("#hostname-input", Input).focus()

    @on(Button.Pressed, "#hostname-save-btn")
    def _on_save(self, event: Button.Pressed) -> None:
        self.dismiss(self.query_one("#hostname-input", Input).value)

    @on(Input.Submitted, "#hostname-input")
    def _on_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    @on(Button.Pressed, "#hostname-cancel-btn")
    def _on_cancel(self, event: Button.Pressed) -> None:
        self.dismiss(None)

    def action_cancel(self) -> None:
        self.dismiss(None)


# ---------------------------------------------------------------------------
# Modal: Confirmation dialog
# ---------------------------------------------------------------------------

class ConfirmScreen(ModalScreen[bool]):
    """Simple yes/no confirmation modal."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
        Binding("y", "confirm", "Yes", show=True),
        Binding("n", "cancel", "No", show=True),
    ]

    def __init__(self, message: str, title: str = "Confirm") -> None:
        super().__init__()
        self._message = message
        self._title = title

    def compose(self) -> ComposeResult:
        with Container(classes="modal-container"):
            with Vertical(classes="modal-box"):
                yield Static(self._title, classes="modal-title")
                yield Static(self._message, markup=True)
                with Horizontal(classes="modal-buttons"):
                    yield Button("Yes", variant="error", id="confirm-yes-btn")
                    yield Button("No", variant="default", id="confirm-no-btn")

    @on(Button.Pressed, "#confirm-yes-btn")
    def _on_yes(self, event: Button.Pressed) -> None:
        self.dismiss(True)

    @on(Button.Pressed, "#confirm-no-btn")
    def _on_no(self, event: Button.Pressed) -> None:
        self.dismiss(False)

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)
