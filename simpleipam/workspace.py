"""Client-side cache of the subnet list and the subnet currently in view.

The workspace is the only owner of these collections.  Loads run outside
the lock; results are applied under it.  Every change of the viewed
subnet bumps a generation counter, and an address fetch started under an
older generation is dropped instead of being applied to the new view.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from simpleipam.ipam_client import IPAMClient, IPAMError
from simpleipam.models import AddressRecord, Subnet
from simpleipam.reconcile import AddressView, build_address_view
from simpleipam.session import SessionExpiredError
from simpleipam.state import IDLE, LOADED, LOADING, Failed, LoadState

logger = logging.getLogger(__name__)


class Workspace:
    """Subnet list, selected subnet, its records and pending drafts."""

    def __init__(self, client: IPAMClient):
        self.client = client
        self._lock = threading.Lock()
        self._generation = 0
        self._resets = 0
        self.subnets: list[Subnet] = []
        self.subnets_state: LoadState = IDLE
        self.selected: Optional[Subnet] = None
        self.records: list[AddressRecord] = []
        self.records_state: LoadState = IDLE
        self.drafts: dict[str, str] = {}

    @property
    def generation(self) -> int:
        return self._generation

    def reset(self) -> None:
        """Forget everything (used on logout)."""
        with self._lock:
            self._generation += 1
            self._resets += 1
            self.subnets = []
            self.subnets_state = IDLE
            self._clear_view()

    # ------------------------------------------------------------------
    # Subnet list
    # ------------------------------------------------------------------

    def load_subnets(self) -> bool:
        """Fetch the subnet list.

        A list that arrives after :meth:`reset` belongs to the ended
        session and is dropped.
        """
        with self._lock:
            resets = self._resets
            self.subnets_state = LOADING
        try:
            subnets = self.client.list_subnets()
        except SessionExpiredError as e:
            self._subnets_failed(resets, str(e))
            raise
        except IPAMError as e:
            logger.warning("Failed to load subnets: %s", e)
            self._subnets_failed(resets, str(e))
            return False

        with self._lock:
            if resets != self._resets:
                logger.info("Discarding subnet list of an ended session")
                return False
            self.subnets = subnets
            self.subnets_state = LOADED
        return True

    def _subnets_failed(self, resets: int, reason: str) -> None:
        with self._lock:
            if resets == self._resets:
                self.subnets_state = Failed(reason)

    def add_subnet(self, subnet: Subnet) -> None:
        with self._lock:
            self.subnets = [subnet] + [s for s in self.subnets if s.id != subnet.id]

    def remove_subnet(self, subnet_id: int) -> None:
        """Drop a deleted subnet, clearing the view if it was selected."""
        with self._lock:
            self.subnets = [s for s in self.subnets if s.id != subnet_id]
            if self.selected is not None and self.selected.id == subnet_id:
                self._generation += 1
                self._clear_view()

    # ------------------------------------------------------------------
    # Selected subnet
    # ------------------------------------------------------------------

    def select_subnet(self, subnet: Subnet) -> int:
        """Put ``subnet`` in view and return the new generation."""
        with self._lock:
            self._generation += 1
            self._clear_view()
            self.selected = subnet
            return self._generation

    def clear_selection(self) -> None:
        with self._lock:
            self._generation += 1
            self._clear_view()

    def _clear_view(self) -> None:
        # Caller holds the lock.
        self.selected = None
        self.records = []
        self.records_state = IDLE
        self.drafts = {}

    def is_viewing(self, subnet_id: int, generation: Optional[int] = None) -> bool:
        if self.selected is None or self.selected.id != subnet_id:
            return False
        return generation is None or generation == self._generation

    def load_addresses(self) -> bool:
        """Fetch the records of the selected subnet.

        Returns False on failure or when the result arrived for a view
        that is no longer current.
        """
        with self._lock:
            subnet = self.selected
            if subnet is None:
                return False
            generation = self._generation
            self.records_state = LOADING

        try:
            records = self.client.list_addresses(subnet.id)
        except SessionExpiredError as e:
            self._records_failed(subnet.id, generation, str(e))
            raise
        except IPAMError as e:
            logger.warning("Failed to load addresses for subnet %s: %s", subnet.id, e)
            self._records_failed(subnet.id, generation, str(e))
            return False

        with self._lock:
            if not self.is_viewing(subnet.id, generation):
                logger.info("Discarding stale addresses for subnet %s", subnet.id)
                return False
            self.records = records
            self.records_state = LOADED
        return True

    def _records_failed(self, subnet_id: int, generation: int, reason: str) -> None:
        with self._lock:
            if self.is_viewing(subnet_id, generation):
                self.records_state = Failed(reason)

    def record_for(self, address: str) -> Optional[AddressRecord]:
        with self._lock:
            for record in self.records:
                if record.ip == address:
                    return record
        return None

    def apply_record(self, subnet_id: int, record: AddressRecord) -> bool:
        """Replace any cached record for the same address with ``record``."""
        with self._lock:
            if not self.is_viewing(subnet_id):
                logger.info("Discarding saved record %s; subnet %s not in view", record.ip, subnet_id)
                return False
            self.records = [record] + [r for r in self.records if r.ip != record.ip]
            self.drafts.pop(record.ip, None)
        return True

    def remove_record(self, subnet_id: int, address: str) -> bool:
        with self._lock:
            if not self.is_viewing(subnet_id):
                return False
            self.records = [r for r in self.records if r.ip != address]
            self.drafts.pop(address, None)
        return True

    # ------------------------------------------------------------------
    # Drafts and the reconciled view
    # ------------------------------------------------------------------

    def set_draft(self, address: str, value: str) -> None:
        with self._lock:
            self.drafts[address] = value

    def discard_draft(self, address: str) -> None:
        with self._lock:
            self.drafts.pop(address, None)

    def address_view(self) -> Optional[AddressView]:
        """Reconcile the selected subnet; None when nothing is selected."""
        with self._lock:
            subnet = self.selected
            records = list(self.records)
            drafts = dict(self.drafts)
        if subnet is None:
            return None
        return build_address_view(subnet.cidr, records, drafts)
