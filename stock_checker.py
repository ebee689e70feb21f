"""Change detection for the stock source.

The stock endpoint returns a JSON object carrying a "reported at" timestamp:
{
    "reportedAt": 1717000000,      # or "reported_at"; numeric or numeric string;
                                   # fractions are kept, integral values become int
    "updatedAt": 1716999999,       # ignored unless configured as a timestamp field
    ... other fields ...
}

A change of that timestamp is what triggers the downstream /force-check call.
The last seen value is tracked in PollerState so the same value never triggers twice:
the state advances to the new value *before* the webhook call is made, so a
failed or slow call is not repeated for that value.
"""
from __future__ import annotations

import enum
import logging
import math
import threading
from dataclasses import dataclass
from typing import Any, Callable, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

DEFAULT_FIELDS: Tuple[str, ...] = ("reportedAt", "reported_at")

Timestamp = Union[int, float]


@dataclass(frozen=True)
class StockSnapshot:
    reported_at: Timestamp | None


class ChangeOutcome(enum.Enum):
    ABSENT = "absent"
    INITIAL = "initial"
    UNCHANGED = "unchanged"
    TRIGGERED = "triggered"
    SKIPPED = "skipped"


def _coerce_timestamp(value: Any) -> Timestamp | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    # fractional values are kept so 100.2 -> 100.7 still counts as a change
    return int(number) if number.is_integer() else number


def parse_snapshot(payload: Any, fields: Sequence[str] = DEFAULT_FIELDS) -> StockSnapshot:
    """Extract the timestamp from ``payload``; the first usable field in ``fields`` wins."""
    if not isinstance(payload, dict):
        logger.warning("Stock payload is not a JSON object; got: %s", type(payload).__name__)
        return StockSnapshot(reported_at=None)
    for name in fields:
        raw = payload.get(name)
        if raw is None or raw == "":
            continue
        value = _coerce_timestamp(raw)
        if value is not None:
            return StockSnapshot(reported_at=value)
        logger.debug("Ignoring non-numeric %s=%r", name, raw)
    return StockSnapshot(reported_at=None)


class PollerState:
    """Process-wide poller state: last seen timestamp plus the two in-flight guards."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.last_seen: Timestamp | None = None
        self.fetch_in_flight = False
        self.trigger_in_flight = False

    def begin_fetch(self) -> bool:
        """Claim the poll cycle; False when another cycle is already running."""
        with self._lock:
            if self.fetch_in_flight:
                return False
            self.fetch_in_flight = True
            return True

    def end_fetch(self) -> None:
        with self._lock:
            self.fetch_in_flight = False

    def record(self, current: Timestamp) -> Tuple[ChangeOutcome, Timestamp | None]:
        """Compare ``current`` with the last seen value and advance the state.

        A TRIGGERED outcome claims the trigger guard; the caller must release it
        with end_trigger().
        """
        with self._lock:
            previous = self.last_seen
            if previous is None:
                outcome = ChangeOutcome.INITIAL
            elif previous == current:
                return ChangeOutcome.UNCHANGED, previous
            elif self.trigger_in_flight:
                outcome = ChangeOutcome.SKIPPED
            else:
                self.trigger_in_flight = True
                outcome = ChangeOutcome.TRIGGERED
            self.last_seen = current
            return outcome, previous

    def end_trigger(self) -> None:
        with self._lock:
            self.trigger_in_flight = False


ChangeCallback = Callable[[Timestamp, Timestamp], Any]


class ChangeDetector:
    """Compares snapshots against PollerState and fires ``on_change(previous, current)``."""

    def __init__(self, state: PollerState, on_change: ChangeCallback) -> None:
        self.state = state
        self.on_change = on_change

    def handle(self, snapshot: StockSnapshot) -> ChangeOutcome:
        current = snapshot.reported_at
        if current is None:
            return ChangeOutcome.ABSENT

        outcome, previous = self.state.record(current)
        if outcome is ChangeOutcome.INITIAL:
            logger.info("Initial reportedAt set to %s", current)
        elif outcome is ChangeOutcome.SKIPPED:
            logger.info("Detected reportedAt change %s -> %s; trigger already in flight, skipping", previous, current)
        elif outcome is ChangeOutcome.TRIGGERED:
            logger.info("Detected reportedAt change: %s -> %s", previous, current)
            try:
                self.on_change(previous, current)
            finally:
                self.state.end_trigger()
        return outcome


__all__ = [
    "StockSnapshot",
    "ChangeOutcome",
    "PollerState",
    "ChangeDetector",
    "parse_snapshot",
    "Timestamp",
]
