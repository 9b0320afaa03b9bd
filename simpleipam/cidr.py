"""CIDR parsing and address enumeration for SimpleIPAM.

Only IPv4 is handled.  Addresses are packed big-endian into a 32-bit
integer; enumeration yields canonical dotted-quad strings.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Sequence
from typing import Iterator, NamedTuple

# Subnets larger than this are not enumerated at all (a /16 is the largest
# that renders).
MAX_ENUMERATED_ADDRESSES = 65536


class CIDRError(ValueError):
    """A CIDR literal could not be parsed."""
    pass


class InvalidAddress(CIDRError):
    """The address part is not four dot-separated octets in [0, 255]."""
    pass


class InvalidPrefix(CIDRError):
    """The prefix-length part is not an integer in [0, 32]."""
    pass


class ParsedCIDR(NamedTuple):
    address: int
    prefix: int

    @property
    def mask(self) -> int:
        # A shift by 32 is special-cased so /0 yields an all-zero mask.
        if self.prefix == 0:
            return 0
        return (0xFFFFFFFF << (32 - self.prefix)) & 0xFFFFFFFF

    @property
    def network(self) -> int:
        return self.address & self.mask

    @property
    def size(self) -> int:
        return 1 << (32 - self.prefix)

    def __str__(self) -> str:
        return f"{int_to_ip(self.network)}/{self.prefix}"


def _parse_int(text: str) -> int | None:
    if not text or not text.isascii() or not text.isdigit():
        return None
    return int(text)


def parse_cidr(text: str) -> ParsedCIDR:
    """Parse ``a.b.c.d/n`` into a :class:`ParsedCIDR`.

    The address part is validated before the prefix part, so a literal
    that is wrong in both places fails with :class:`InvalidAddress`.
    """
    address_part, _, prefix_part = text.partition("/")

    # Octets with leading zeros ("010") are rejected, as the backend does.
    try:
        address = int(ipaddress.IPv4Address(address_part))
    except ipaddress.AddressValueError:
        raise InvalidAddress(f"invalid address in {text!r}")

    prefix = _parse_int(prefix_part)
    if prefix is None or prefix > 32:
        raise InvalidPrefix(f"invalid prefix length in {text!r}")

    return ParsedCIDR(address, prefix)


def int_to_ip(value: int) -> str:
    return str(ipaddress.IPv4Address(value))


def ip_to_int(text: str) -> int:
    """Pack a dotted-quad string; raises :class:`CIDRError`."""
    return parse_cidr(f"{text}/32").address


class AddressRange(Sequence):
    """The ordered host addresses of a parsed CIDR block.

    Behaves like an immutable sequence of dotted-quad strings, so it can
    be iterated any number of times.  A block larger than
    :data:`MAX_ENUMERATED_ADDRESSES` is *oversized*: it has length zero
    but still reports its real ``size``.
    """

    def __init__(self, cidr: ParsedCIDR):
        self.cidr = cidr
        self.network = cidr.network
        self.size = cidr.size
        self.oversized = self.size > MAX_ENUMERATED_ADDRESSES
        self._count = 0 if self.oversized else self.size

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(self._count))]
        if index < 0:
            index += self._count
        if not 0 <= index < self._count:
            raise IndexError("address index out of range")
        return int_to_ip(self.network + index)

    def __iter__(self) -> Iterator[str]:
        for offset in range(self._count):
            yield int_to_ip(self.network + offset)

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, str):
            return False
        try:
            value = ip_to_int(address)
        except CIDRError:
            return False
        return 0 <= value - self.network < self._count and int_to_ip(value) == address

    def is_reserved(self, address: str) -> bool:
        """True for the network and broadcast addresses of a /30 or larger."""
        if self.cidr.prefix > 30 or not self._count:
            return False
        return address in (self[0], self[-1])

    def __repr__(self) -> str:
        return f"AddressRange({self.cidr}, size={self.size}, oversized={self.oversized})"


def enumerate_addresses(cidr: ParsedCIDR) -> AddressRange:
    """Expand a parsed CIDR into its ascending host addresses.

    Returns an empty range (with ``oversized`` set) when the block holds
    more than :data:`MAX_ENUMERATED_ADDRESSES` addresses.
    """
    return AddressRange(cidr)
