"""Data models for SimpleIPAM."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union


def _format_timestamp(value: str) -> str:
    """Render a backend RFC 3339 timestamp for display."""
    if not value:
        return ""
    text = value.replace("Z", "+00:00")
    # Go emits up to nanosecond precision; datetime accepts microseconds.
    head, dot, rest = text.partition(".")
    if dot:
        digits = "".join(ch for ch in rest if ch.isdigit())
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest[len(digits):]}"
    try:
        stamp = datetime.fromisoformat(text)
    except ValueError:
        return value
    return stamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")


@dataclass
class Subnet:
    id: int
    cidr: str
    description: str = ""
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Subnet":
        return cls(
            id=int(data.get("id") or 0),
            cidr=str(data.get("cidr") or ""),
            description=str(data.get("description") or ""),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
        )

    @property
    def updated_display(self) -> str:
        return _format_timestamp(self.updated_at)


@dataclass
class AddressRecord:
    """A persisted hostname assignment.  An empty hostname means unset."""
    id: str
    ip: str
    hostname: str = ""
    subnet_id: int = 0
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AddressRecord":
        return cls(
            id=str(data.get("id") or ""),
            ip=str(data.get("ip") or ""),
            hostname=str(data.get("hostname") or ""),
            subnet_id=int(data.get("subnet_id") or 0),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
        )

    @property
    def updated_display(self) -> str:
        return _format_timestamp(self.updated_at)


# ---------------------------------------------------------------------------
# Address slots (derived, never persisted)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UnassignedSlot:
    """An enumerated address with no record behind it."""
    address: str
    value: str = ""
    reserved: bool = False

    @property
    def record(self) -> None:
        return None

    @property
    def assigned(self) -> bool:
        return False


@dataclass(frozen=True)
class AssignedSlot:
    """An enumerated address backed by an :class:`AddressRecord`."""
    address: str
    record: AddressRecord
    value: str = ""
    reserved: bool = False

    @property
    def assigned(self) -> bool:
        return True


AddressSlot = Union[UnassignedSlot, AssignedSlot]


def slot_record(slot: AddressSlot) -> Optional[AddressRecord]:
    if isinstance(slot, AssignedSlot):
        return slot.record
    return None
