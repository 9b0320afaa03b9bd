"""Hostname and subnet mutations with per-key single-flight.

A hostname edit is turned into exactly one backend call:

* the address has a record with a hostname and the new value is blank
  -> delete the record
* the address has a record with a hostname -> update (patch hostname)
* anything else -> create a record

At most one mutation per key (address within a subnet, or subnet id) is
in flight; a second one is rejected with :class:`MutationInFlightError`.
Successful results replace the cached entry for that key.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional, TypeVar

from simpleipam.cidr import CIDRError, parse_cidr
from simpleipam.ipam_client import IPAMError
from simpleipam.models import AddressRecord, Subnet
from simpleipam.session import SessionExpiredError
from simpleipam.state import IDLE, IN_FLIGHT, Failed, InFlight, MutationState
from simpleipam.workspace import Workspace

logger = logging.getLogger(__name__)

T = TypeVar("T")

NEW_SUBNET_KEY = "subnet:new"


class MutationInFlightError(Exception):
    """A mutation for the same key is already outstanding."""

    def __init__(self, key: str):
        super().__init__(f"Operation already in progress for {key}")
        self.key = key


class ValidationError(ValueError):
    """Input rejected locally, before any request was made."""
    pass


class MutationKind(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def decide_mutation(existing: Optional[AddressRecord], value: str) -> MutationKind:
    hostname = value.strip()
    if existing is not None and existing.hostname:
        if not hostname:
            return MutationKind.DELETE
        return MutationKind.UPDATE
    return MutationKind.CREATE


def validate_subnet_input(cidr: str) -> str:
    """Return the trimmed CIDR or raise :class:`ValidationError`."""
    cidr = cidr.strip()
    if not cidr:
        raise ValidationError("CIDR is required")
    try:
        parse_cidr(cidr)
    except CIDRError as e:
        raise ValidationError(str(e))
    return cidr


def address_key(subnet_id: int, address: str) -> str:
    return f"ip:{subnet_id}:{address}"


def subnet_key(subnet_id: int) -> str:
    return f"subnet:{subnet_id}"


class MutationCoordinator:
    """Dispatch mutations for the :class:`Workspace` and fold results back."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace
        self.client = workspace.client
        self._lock = threading.Lock()
        self._states: dict[str, MutationState] = {}

    def reset(self) -> None:
        with self._lock:
            self._states = {}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def state(self, key: str) -> MutationState:
        with self._lock:
            return self._states.get(key, IDLE)

    def address_state(self, subnet_id: int, address: str) -> MutationState:
        return self.state(address_key(subnet_id, address))

    def subnet_state(self, subnet_id: int) -> MutationState:
        return self.state(subnet_key(subnet_id))

    @property
    def create_state(self) -> MutationState:
        return self.state(NEW_SUBNET_KEY)

    def in_flight(self, key: str) -> bool:
        return isinstance(self.state(key), InFlight)

    def _claim(self, key: str) -> None:
        with self._lock:
            if isinstance(self._states.get(key), InFlight):
                raise MutationInFlightError(key)
            self._states[key] = IN_FLIGHT

    def _settle(self, key: str, error: Optional[str] = None) -> None:
        with self._lock:
            if error is None:
                self._states.pop(key, None)
            else:
                self._states[key] = Failed(error)

    def _dispatch(self, key: str, call: Callable[[], T]) -> tuple[bool, Optional[T]]:
        """Run ``call`` with ``key`` claimed; returns ``(ok, result)``."""
        try:
            result = call()
        except SessionExpiredError as e:
            self._settle(key, str(e))
            raise
        except IPAMError as e:
            logger.warning("Mutation %s failed: %s", key, e)
            self._settle(key, str(e))
            return False, None
        except Exception:
            self._settle(key, "unexpected error")
            raise
        self._settle(key)
        return True, result

    # ------------------------------------------------------------------
    # Address records
    # ------------------------------------------------------------------

    def save_hostname(self, address: str, value: str) -> bool:
        """Create, update or delete the record for ``address``."""
        subnet = self.workspace.selected
        if subnet is None:
            return False
        key = address_key(subnet.id, address)
        self._claim(key)

        existing = self.workspace.record_for(address)
        hostname = value.strip()
        kind = decide_mutation(existing, hostname)
        logger.debug("%s %s in subnet %s", kind.value, address, subnet.id)

        if kind is MutationKind.DELETE:
            ok, _ = self._dispatch(
                key, lambda: self.client.delete_address(subnet.id, existing.id),
            )
            if ok:
                self.workspace.remove_record(subnet.id, address)
            return ok

        if kind is MutationKind.UPDATE:
            ok, record = self._dispatch(
                key, lambda: self.client.update_address(subnet.id, existing.id, hostname),
            )
        else:
            ok, record = self._dispatch(
                key, lambda: self.client.create_address(subnet.id, address, hostname),
            )
        if ok:
            self.workspace.apply_record(subnet.id, record)
        return ok

    def delete_address(self, address: str) -> bool:
        """Remove the record for ``address`` outright."""
        subnet = self.workspace.selected
        if subnet is None:
            return False
        key = address_key(subnet.id, address)
        self._claim(key)

        existing = self.workspace.record_for(address)
        if existing is None:
            self._settle(key)
            self.workspace.discard_draft(address)
            return True

        ok, _ = self._dispatch(
            key, lambda: self.client.delete_address(subnet.id, existing.id),
        )
        if ok:
            self.workspace.remove_record(subnet.id, address)
        return ok

    # ------------------------------------------------------------------
    # Subnets
    # ------------------------------------------------------------------

    def create_subnet(self, cidr: str, description: str = "") -> Optional[Subnet]:
        self._claim(NEW_SUBNET_KEY)
        try:
            cidr = validate_subnet_input(cidr)
        except ValidationError as e:
            self._settle(NEW_SUBNET_KEY, str(e))
            return None

        ok, subnet = self._dispatch(
            NEW_SUBNET_KEY, lambda: self.client.create_subnet(cidr, description.strip()),
        )
        if ok:
            self.workspace.add_subnet(subnet)
        return subnet

    def delete_subnet(self, subnet_id: int) -> bool:
        key = subnet_key(subnet_id)
        self._claim(key)
        ok, _ = self._dispatch(key, lambda: self.client.delete_subnet(subnet_id))
        if ok:
            self.workspace.remove_subnet(subnet_id)
        return ok
