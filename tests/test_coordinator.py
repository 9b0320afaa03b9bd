"""Tests for hostname / subnet mutations."""

import threading
from unittest.mock import MagicMock

import pytest

from simpleipam.coordinator import (
    NEW_SUBNET_KEY,
    MutationCoordinator,
    MutationInFlightError,
    MutationKind,
    ValidationError,
    address_key,
    decide_mutation,
    validate_subnet_input,
)
from simpleipam.ipam_client import IPAMError
from simpleipam.models import AddressRecord, Subnet
from simpleipam.session import SessionExpiredError
from simpleipam.state import IDLE, IN_FLIGHT, Failed
from simpleipam.workspace import Workspace

SUBNET = Subnet(id=7, cidr="10.0.0.0/29")


def _record(ip, hostname, record_id="r1"):
    return AddressRecord(id=record_id, ip=ip, hostname=hostname, subnet_id=SUBNET.id)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def workspace(client):
    ws = Workspace(client)
    ws.select_subnet(SUBNET)
    return ws


@pytest.fixture
def coordinator(workspace):
    return MutationCoordinator(workspace)


def _with_records(workspace, client, records):
    client.list_addresses.return_value = records
    workspace.load_addresses()


class TestDecideMutation:

    def test_no_record_creates(self):
        assert decide_mutation(None, "db1") is MutationKind.CREATE

    def test_record_with_hostname_updates(self):
        assert decide_mutation(_record("10.0.0.1", "web1"), "web2") is MutationKind.UPDATE

    def test_blank_value_deletes(self):
        assert decide_mutation(_record("10.0.0.1", "web1"), "   ") is MutationKind.DELETE

    def test_record_without_hostname_creates(self):
        assert decide_mutation(_record("10.0.0.1", ""), "web1") is MutationKind.CREATE


class TestValidateSubnetInput:

    def test_trims(self):
        assert validate_subnet_input("  10.0.0.0/24 ") == "10.0.0.0/24"

    def test_required(self):
        with pytest.raises(ValidationError, match="CIDR is required"):
            validate_subnet_input("  ")

    def test_malformed(self):
        with pytest.raises(ValidationError):
            validate_subnet_input("10.0.0.0/40")


class TestSaveHostname:

    def test_create(self, coordinator, workspace, client):
        client.create_address.return_value = _record("10.0.0.3", "db1", "new")
        workspace.set_draft("10.0.0.3", " db1 ")

        assert coordinator.save_hostname("10.0.0.3", " db1 ") is True

        client.create_address.assert_called_once_with(7, "10.0.0.3", "db1")
        client.update_address.assert_not_called()
        assert workspace.record_for("10.0.0.3").id == "new"
        assert workspace.drafts == {}
        assert coordinator.address_state(7, "10.0.0.3") == IDLE

    def test_update(self, coordinator, workspace, client):
        _with_records(workspace, client, [_record("10.0.0.1", "web1")])
        client.update_address.return_value = _record("10.0.0.1", "web2")

        assert coordinator.save_hostname("10.0.0.1", "web2") is True

        client.update_address.assert_called_once_with(7, "r1", "web2")
        client.create_address.assert_not_called()
        assert workspace.record_for("10.0.0.1").hostname == "web2"

    def test_blank_deletes(self, coordinator, workspace, client):
        _with_records(workspace, client, [_record("10.0.0.1", "web1")])
        workspace.set_draft("10.0.0.1", "")

        assert coordinator.save_hostname("10.0.0.1", "") is True

        client.delete_address.assert_called_once_with(7, "r1")
        assert workspace.record_for("10.0.0.1") is None
        assert "10.0.0.1" not in workspace.drafts

    def test_failure_keeps_draft_and_records(self, coordinator, workspace, client):
        _with_records(workspace, client, [_record("10.0.0.1", "web1")])
        workspace.set_draft("10.0.0.1", "web2")
        client.update_address.side_effect = IPAMError("conflict", status=409)

        assert coordinator.save_hostname("10.0.0.1", "web2") is False

        assert coordinator.address_state(7, "10.0.0.1") == Failed("conflict")
        assert workspace.record_for("10.0.0.1").hostname == "web1"
        assert workspace.drafts == {"10.0.0.1": "web2"}

    def test_retry_after_failure(self, coordinator, client):
        client.create_address.side_effect = [
            IPAMError("down"),
            _record("10.0.0.2", "x", "r2"),
        ]
        assert coordinator.save_hostname("10.0.0.2", "x") is False
        assert coordinator.save_hostname("10.0.0.2", "x") is True
        assert coordinator.address_state(7, "10.0.0.2") == IDLE

    def test_session_expiry_propagates(self, coordinator, client):
        client.create_address.side_effect = SessionExpiredError("expired")
        with pytest.raises(SessionExpiredError):
            coordinator.save_hostname("10.0.0.2", "x")
        assert coordinator.address_state(7, "10.0.0.2") == Failed("expired")

    def test_no_selection(self, client):
        coordinator = MutationCoordinator(Workspace(client))
        assert coordinator.save_hostname("10.0.0.1", "x") is False
        client.create_address.assert_not_called()


class TestSingleFlight:

    def _blocking_create(self, client):
        started = threading.Event()
        release = threading.Event()

        def create(subnet_id, ip, hostname):
            started.set()
            release.wait(5)
            return _record(ip, hostname, f"id-{ip}")

        client.create_address.side_effect = create
        return started, release

    def test_same_address_is_rejected(self, coordinator, client):
        started, release = self._blocking_create(client)
        worker = threading.Thread(target=coordinator.save_hostname, args=("10.0.0.1", "a"))
        worker.start()
        assert started.wait(5)

        assert coordinator.address_state(7, "10.0.0.1") == IN_FLIGHT
        with pytest.raises(MutationInFlightError) as excinfo:
            coordinator.save_hostname("10.0.0.1", "b")
        assert excinfo.value.key == address_key(7, "10.0.0.1")

        release.set()
        worker.join(5)
        assert client.create_address.call_count == 1
        assert coordinator.address_state(7, "10.0.0.1") == IDLE

    def test_different_addresses_run_together(self, coordinator, client):
        both = threading.Barrier(2, timeout=5)

        def create(subnet_id, ip, hostname):
            both.wait()
            return _record(ip, hostname, f"id-{ip}")

        client.create_address.side_effect = create
        results = []
        workers = [
            threading.Thread(
                target=lambda ip=ip: results.append(coordinator.save_hostname(ip, "h")),
            )
            for ip in ("10.0.0.1", "10.0.0.2")
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(5)

        assert results == [True, True]
        assert client.create_address.call_count == 2


class TestDeleteAddress:

    def test_deletes_record(self, coordinator, workspace, client):
        _with_records(workspace, client, [_record("10.0.0.1", "web1")])
        assert coordinator.delete_address("10.0.0.1") is True
        client.delete_address.assert_called_once_with(7, "r1")
        assert workspace.record_for("10.0.0.1") is None

    def test_without_record_only_drops_draft(self, coordinator, workspace, client):
        workspace.set_draft("10.0.0.4", "typo")
        assert coordinator.delete_address("10.0.0.4") is True
        client.delete_address.assert_not_called()
        assert workspace.drafts == {}


class TestSubnets:

    def test_create(self, coordinator, workspace, client):
        created = Subnet(id=9, cidr="10.9.0.0/24", description="lab")
        client.create_subnet.return_value = created

        assert coordinator.create_subnet(" 10.9.0.0/24 ", " lab ") is created

        client.create_subnet.assert_called_once_with("10.9.0.0/24", "lab")
        assert workspace.subnets[0] is created
        assert coordinator.create_state == IDLE

    def test_invalid_cidr_never_reaches_backend(self, coordinator, client):
        assert coordinator.create_subnet("10.0.0/24") is None
        client.create_subnet.assert_not_called()
        assert isinstance(coordinator.state(NEW_SUBNET_KEY), Failed)

    def test_empty_cidr(self, coordinator, client):
        assert coordinator.create_subnet("") is None
        assert coordinator.create_state == Failed("CIDR is required")

    def test_backend_rejection(self, coordinator, workspace, client):
        client.create_subnet.side_effect = IPAMError("subnet overlaps", status=409)
        assert coordinator.create_subnet("10.0.0.0/24") is None
        assert coordinator.create_state == Failed("subnet overlaps")
        assert workspace.subnets == []

    def test_delete_selected_subnet(self, coordinator, workspace, client):
        workspace.add_subnet(SUBNET)
        _with_records(workspace, client, [_record("10.0.0.1", "web1")])

        assert coordinator.delete_subnet(7) is True

        client.delete_subnet.assert_called_once_with(7)
        assert workspace.selected is None
        assert workspace.records == []
        assert workspace.subnets == []

    def test_delete_failure(self, coordinator, workspace, client):
        workspace.add_subnet(SUBNET)
        client.delete_subnet.side_effect = IPAMError("gone", status=404)
        assert coordinator.delete_subnet(7) is False
        assert coordinator.subnet_state(7) == Failed("gone")
        assert workspace.selected is SUBNET

    def test_reset_clears_states(self, coordinator, client):
        client.delete_subnet.side_effect = IPAMError("gone")
        coordinator.delete_subnet(7)
        coordinator.reset()
        assert coordinator.subnet_state(7) == IDLE
