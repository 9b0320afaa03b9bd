"""Tests for CIDR parsing and address enumeration."""

import pytest

from simpleipam.cidr import (
    MAX_ENUMERATED_ADDRESSES,
    InvalidAddress,
    InvalidPrefix,
    enumerate_addresses,
    int_to_ip,
    ip_to_int,
    parse_cidr,
)


class TestParseCIDR:

    def test_parses_address_and_prefix(self):
        parsed = parse_cidr("192.168.1.0/24")
        assert parsed.address == 0xC0A80100
        assert parsed.prefix == 24

    def test_network_is_masked(self):
        parsed = parse_cidr("10.1.2.3/8")
        assert int_to_ip(parsed.network) == "10.0.0.0"
        assert str(parsed) == "10.0.0.0/8"

    def test_zero_prefix_has_empty_mask(self):
        parsed = parse_cidr("255.255.255.255/0")
        assert parsed.mask == 0
        assert parsed.network == 0
        assert parsed.size == 2 ** 32

    def test_full_prefix(self):
        parsed = parse_cidr("8.8.8.8/32")
        assert parsed.mask == 0xFFFFFFFF
        assert parsed.size == 1

    @pytest.mark.parametrize("text", [
        "10.0.0/24",
        "10.0.0.0.0/24",
        "10.0.0.256/24",
        "10.0.-1.0/24",
        "10.0.a.0/24",
        "10..0.0/24",
        "10.0.0.01/24",
        "/24",
    ])
    def test_bad_address(self, text):
        with pytest.raises(InvalidAddress):
            parse_cidr(text)

    @pytest.mark.parametrize("text", [
        "10.0.0.0/33",
        "10.0.0.0/",
        "10.0.0.0",
        "10.0.0.0/x",
        "10.0.0.0/-1",
        "10.0.0.0/2/4",
    ])
    def test_bad_prefix(self, text):
        with pytest.raises(InvalidPrefix):
            parse_cidr(text)

    def test_address_checked_before_prefix(self):
        with pytest.raises(InvalidAddress):
            parse_cidr("999.0.0.0/99")

    def test_leading_zero_octets_are_rejected(self):
        with pytest.raises(InvalidAddress):
            parse_cidr("10.0.0.010/24")
        assert parse_cidr("10.0.0.10/24").address == ip_to_int("10.0.0.10")

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            parse_cidr("not a cidr")

    def test_ip_round_trip(self):
        assert int_to_ip(ip_to_int("172.16.254.1")) == "172.16.254.1"


class TestEnumerateAddresses:

    def test_slash_30(self):
        addresses = enumerate_addresses(parse_cidr("10.0.0.0/30"))
        assert list(addresses) == ["10.0.0.0", "10.0.0.1", "10.0.0.2", "10.0.0.3"]

    def test_starts_at_network_address(self):
        addresses = enumerate_addresses(parse_cidr("10.0.0.5/29"))
        assert addresses[0] == "10.0.0.0"
        assert addresses[-1] == "10.0.0.7"

    def test_slash_32_yields_one(self):
        addresses = enumerate_addresses(parse_cidr("192.0.2.7/32"))
        assert list(addresses) == ["192.0.2.7"]

    def test_count_and_ordering(self):
        addresses = enumerate_addresses(parse_cidr("10.20.0.0/22"))
        values = [ip_to_int(a) for a in addresses]
        assert len(values) == 1024
        assert values == sorted(set(values))
        assert addresses[255] == "10.20.0.255"
        assert addresses[256] == "10.20.1.0"

    def test_slash_16_is_the_largest_enumerated(self):
        addresses = enumerate_addresses(parse_cidr("10.0.0.0/16"))
        assert len(addresses) == MAX_ENUMERATED_ADDRESSES
        assert not addresses.oversized

    def test_oversized_is_empty(self):
        addresses = enumerate_addresses(parse_cidr("10.0.0.0/8"))
        assert list(addresses) == []
        assert len(addresses) == 0
        assert addresses.oversized
        assert addresses.size == 16777216

    def test_slash_15_is_oversized(self):
        assert enumerate_addresses(parse_cidr("10.0.0.0/15")).oversized

    def test_can_iterate_twice(self):
        addresses = enumerate_addresses(parse_cidr("10.0.0.0/31"))
        assert list(addresses) == list(addresses)

    def test_index_out_of_range(self):
        addresses = enumerate_addresses(parse_cidr("10.0.0.0/31"))
        with pytest.raises(IndexError):
            addresses[2]

    def test_slicing(self):
        addresses = enumerate_addresses(parse_cidr("10.0.0.0/24"))
        assert addresses[1:3] == ["10.0.0.1", "10.0.0.2"]

    def test_contains(self):
        addresses = enumerate_addresses(parse_cidr("10.0.0.0/24"))
        assert "10.0.0.42" in addresses
        assert "10.0.1.0" not in addresses
        assert "bogus" not in addresses
        assert 42 not in addresses

    def test_reserved_addresses(self):
        addresses = enumerate_addresses(parse_cidr("10.0.0.0/30"))
        assert addresses.is_reserved("10.0.0.0")
        assert addresses.is_reserved("10.0.0.3")
        assert not addresses.is_reserved("10.0.0.1")

    def test_point_to_point_has_no_reserved(self):
        addresses = enumerate_addresses(parse_cidr("10.0.0.0/31"))
        assert not addresses.is_reserved("10.0.0.0")
        assert not addresses.is_reserved("10.0.0.1")
