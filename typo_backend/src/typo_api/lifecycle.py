"""
Typo lifecycle state machine.

A typo moves between four statuses. Callers request a move by supplying an
event; the table below is the complete set of permitted edges. Anything not
listed is rejected and leaves the status as it was.

    REPORTED    --START-->   IN_PROGRESS
    IN_PROGRESS --RESOLVE--> RESOLVED
    CANCELED    --RESTART--> IN_PROGRESS
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple


# PUBLIC_INTERFACE
class TypoStatus(str, Enum):
    """Lifecycle status of a reported typo."""

    REPORTED = "REPORTED"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CANCELED = "CANCELED"


# PUBLIC_INTERFACE
class TypoEvent(str, Enum):
    """Caller-supplied trigger requesting a lifecycle transition."""

    START = "START"
    RESTART = "RESTART"
    RESOLVE = "RESOLVE"


TRANSITIONS: Dict[Tuple[TypoStatus, TypoEvent], TypoStatus] = {
    (TypoStatus.REPORTED, TypoEvent.START): TypoStatus.IN_PROGRESS,
    (TypoStatus.IN_PROGRESS, TypoEvent.RESOLVE): TypoStatus.RESOLVED,
    (TypoStatus.CANCELED, TypoEvent.RESTART): TypoStatus.IN_PROGRESS,
}

INITIAL_STATUS = TypoStatus.REPORTED


# PUBLIC_INTERFACE
def next_status(current: TypoStatus, event: Optional[TypoEvent]) -> Tuple[TypoStatus, bool]:
    """
    Compute the status that follows `current` when `event` is applied.

    Returns a (status, ok) pair:
    - event is None: (current, True), a read that changes nothing
    - permitted edge: (target, True)
    - anything else: (current, False), the transition was not applied
    """
    if event is None:
        return current, True
    target = TRANSITIONS.get((current, event))
    if target is None:
        return current, False
    return target, True


def is_transition_allowed(current: TypoStatus, event: TypoEvent) -> bool:
    """True when `event` has an edge out of `current` in TRANSITIONS."""
    return (current, event) in TRANSITIONS


def allowed_events(current: TypoStatus) -> List[TypoEvent]:
    """Events that have an outgoing edge from `current`, in declaration order."""
    return [event for event in TypoEvent if is_transition_allowed(current, event)]
