"""Merge the enumerated address space with the sparse record set."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Sequence

from simpleipam.cidr import AddressRange, CIDRError, enumerate_addresses, parse_cidr
from simpleipam.models import AddressRecord, AddressSlot, AssignedSlot, UnassignedSlot


class ViewStatus(Enum):
    OK = "ok"
    TOO_LARGE = "too_large"
    INVALID_CIDR = "invalid_cidr"


@dataclass(frozen=True)
class AddressView:
    """The displayable address space of one subnet.

    ``slots`` is empty unless ``status`` is ``OK``.  ``TOO_LARGE`` and
    ``INVALID_CIDR`` both mean "cannot display", but stay distinct.
    """
    status: ViewStatus
    slots: tuple[AddressSlot, ...] = field(default_factory=tuple)
    size: int = 0
    error: str = ""

    @property
    def displayable(self) -> bool:
        return self.status is ViewStatus.OK


def reconcile(
    addresses: Sequence[str],
    records: Iterable[AddressRecord],
    drafts: Mapping[str, str] | None = None,
) -> list[AddressSlot]:
    """Pair every address with its record and effective hostname value.

    The output has exactly one slot per address, in the order given.  A
    pending draft wins over the record's hostname, even when empty.
    """
    drafts = drafts or {}
    by_ip: dict[str, AddressRecord] = {}
    for record in records:
        by_ip[record.ip] = record

    reserved = addresses.is_reserved if isinstance(addresses, AddressRange) else None

    slots: list[AddressSlot] = []
    for address in addresses:
        record = by_ip.get(address)
        is_reserved = bool(reserved and reserved(address))
        if address in drafts:
            value = drafts[address]
        elif record is not None:
            value = record.hostname
        else:
            value = ""
        if record is None:
            slots.append(UnassignedSlot(address, value, is_reserved))
        else:
            slots.append(AssignedSlot(address, record, value, is_reserved))
    return slots


def build_address_view(
    cidr: str,
    records: Iterable[AddressRecord],
    drafts: Mapping[str, str] | None = None,
) -> AddressView:
    """Parse, enumerate and reconcile ``cidr`` in one step."""
    try:
        parsed = parse_cidr(cidr)
    except CIDRError as exc:
        return AddressView(ViewStatus.INVALID_CIDR, error=str(exc))

    addresses = enumerate_addresses(parsed)
    if addresses.oversized:
        return AddressView(ViewStatus.TOO_LARGE, size=addresses.size)

    slots = reconcile(addresses, records, drafts)
    return AddressView(ViewStatus.OK, tuple(slots), size=addresses.size)
