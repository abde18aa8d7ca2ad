"""Threshold-crossing alert state machine."""

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from .config import now_central
from .models import AlertEvent, AlertState, PriceReading, ThresholdConfig

logger = logging.getLogger(__name__)


class AlertStateTracker:
    """
    Decides which readings deserve an alert.

    Keeps one AlertState per hour label. An hour fires once when its price
    reaches the threshold, stays quiet while it remains at or above it, and
    re-arms as soon as a reading drops below it.
    """

    def __init__(self, clock: Callable[[], datetime] = now_central):
        self._clock = clock
        self._states: dict[str, AlertState] = {}
        # Lookup creates entries, so the whole map is guarded, not single states.
        self._lock = threading.Lock()

    def evaluate(
        self,
        reading: PriceReading,
        config: ThresholdConfig,
        source_url: str = "",
    ) -> Optional[AlertEvent]:
        """
        Update the state for reading.hour_label and return an AlertEvent on
        a below-to-at/above transition, otherwise None.

        An hour label seen for the first time starts unarmed, so a first
        reading already at the threshold fires immediately.
        """
        with self._lock:
            state = self._states.get(reading.hour_label)
            if state is None:
                state = AlertState(hour_label=reading.hour_label)
                self._states[reading.hour_label] = state
            state.updated_at = self._clock()

            if reading.numeric_price < config.threshold_cents:
                if state.armed:
                    logger.info(
                        f"[{reading.hour_label}] Price {reading.raw_display} back below "
                        f"{config.threshold_cents}¢, alert re-armed"
                    )
                state.armed = False
                return None

            if state.armed:
                logger.debug(f"[{reading.hour_label}] Already alerted for this crossing")
                return None

            state.armed = True

        return AlertEvent(
            hour_label=reading.hour_label,
            raw_display=reading.raw_display,
            numeric_price=reading.numeric_price,
            source_url=source_url,
            threshold_cents=config.threshold_cents,
        )

    def is_armed(self, hour_label: str) -> bool:
        """True if an alert already fired for the current above-threshold run."""
        with self._lock:
            state = self._states.get(hour_label)
            return state.armed if state else False

    def prune(self, before: datetime) -> int:
        """Drop states last updated before `before`. Returns how many were removed."""
        with self._lock:
            stale = [
                label
                for label, state in self._states.items()
                if state.updated_at is not None and state.updated_at < before
            ]
            for label in stale:
                del self._states[label]
        if stale:
            logger.debug(f"Pruned {len(stale)} stale hour states")
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
