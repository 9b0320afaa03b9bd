"""Per-concern state machines.

Collections move through ``Idle -> Loading -> Loaded | Failed``; each
mutation key moves through ``Idle -> InFlight -> Idle | Failed``.  Every
state is a small immutable value so the screens can match on it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Loaded:
    pass


@dataclass(frozen=True)
class InFlight:
    pass


@dataclass(frozen=True)
class Failed:
    reason: str


IDLE = Idle()
LOADING = Loading()
LOADED = Loaded()
IN_FLIGHT = InFlight()

LoadState = Union[Idle, Loading, Loaded, Failed]
MutationState = Union[Idle, InFlight, Failed]
