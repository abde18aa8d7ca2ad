"""Unit tests for the threshold-crossing alert tracker."""

import pytest
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from comed_monitor.models import PriceReading, ThresholdConfig
from comed_monitor.tracker import AlertStateTracker


def reading(hour: str, price: float) -> PriceReading:
    return PriceReading(hour_label=hour, raw_display=f"{price}¢", numeric_price=price)


def run_sequence(tracker, hour, prices, threshold=1.5):
    config = ThresholdConfig(threshold)
    return [tracker.evaluate(reading(hour, p), config) is not None for p in prices]


class TestCrossing:
    """Tests for when an alert fires."""

    def test_first_reading_above_fires(self):
        """A never-seen hour at or above threshold fires immediately."""
        tracker = AlertStateTracker()
        event = tracker.evaluate(reading("14:00", 2.0), ThresholdConfig(1.5), source_url="http://x")
        assert event is not None
        assert event.hour_label == "14:00"
        assert event.raw_display == "2.0¢"
        assert event.numeric_price == 2.0
        assert event.source_url == "http://x"
        assert tracker.is_armed("14:00")

    def test_exactly_at_threshold_fires(self):
        """Price equal to threshold counts as a crossing."""
        tracker = AlertStateTracker()
        assert run_sequence(tracker, "14:00", [1.5]) == [True]

    def test_below_threshold_never_fires(self):
        tracker = AlertStateTracker()
        assert run_sequence(tracker, "14:00", [0.5, 1.0, 1.49]) == [False, False, False]
        assert not tracker.is_armed("14:00")

    def test_fires_on_upward_transition(self):
        tracker = AlertStateTracker()
        assert run_sequence(tracker, "14:00", [1.0, 1.2, 1.6]) == [False, False, True]


class TestDedup:
    """Tests for suppressing repeat alerts."""

    def test_repeated_high_readings_fire_once(self):
        tracker = AlertStateTracker()
        assert run_sequence(tracker, "14:00", [2.0, 2.5, 3.0, 1.5]) == [True, False, False, False]

    def test_identical_reading_twice_is_idempotent(self):
        """Redelivering the same reading never produces a second event."""
        tracker = AlertStateTracker()
        config = ThresholdConfig(1.5)
        r = reading("14:00", 2.0)
        assert tracker.evaluate(r, config) is not None
        assert tracker.evaluate(r, config) is None


class TestRearm:
    """Tests for re-arming after a drop below threshold."""

    def test_rearm_sequence_fires_twice(self):
        tracker = AlertStateTracker()
        assert run_sequence(tracker, "14:00", [2.0, 2.0, 0.9, 2.0]) == [True, False, False, True]

    def test_drop_below_rearms_even_when_unarmed(self):
        tracker = AlertStateTracker()
        assert run_sequence(tracker, "14:00", [0.9, 0.8, 2.0]) == [False, False, True]

    def test_drop_clears_armed_flag(self):
        tracker = AlertStateTracker()
        run_sequence(tracker, "14:00", [2.0])
        assert tracker.is_armed("14:00")
        run_sequence(tracker, "14:00", [1.0])
        assert not tracker.is_armed("14:00")


class TestIndependentHours:
    """Tests that hour labels do not interfere."""

    def test_identical_trajectories_fire_independently(self):
        tracker = AlertStateTracker()
        config = ThresholdConfig(1.5)
        results = []
        for price in [2.0, 2.0, 0.9, 2.0]:
            for hour in ("14:00", "15:00"):
                results.append((hour, tracker.evaluate(reading(hour, price), config) is not None))
        fired = [hour for hour, ok in results if ok]
        assert fired.count("14:00") == 2
        assert fired.count("15:00") == 2

    def test_armed_hour_does_not_suppress_other_hour(self):
        tracker = AlertStateTracker()
        config = ThresholdConfig(1.5)
        assert tracker.evaluate(reading("14:00", 2.0), config) is not None
        assert tracker.evaluate(reading("15:00", 2.0), config) is not None
        assert len(tracker) == 2


class TestPrune:
    """Tests for dropping stale hour states."""

    def test_prune_removes_old_states(self):
        now = datetime(2025, 7, 1, 10, 0)
        clock_value = [now - timedelta(days=1)]
        tracker = AlertStateTracker(clock=lambda: clock_value[0])
        config = ThresholdConfig(1.5)

        tracker.evaluate(reading("14:00", 2.0), config)
        clock_value[0] = now
        tracker.evaluate(reading("15:00", 2.0), config)

        removed = tracker.prune(datetime(2025, 7, 1))
        assert removed == 1
        assert not tracker.is_armed("14:00")
        assert tracker.is_armed("15:00")

    def test_pruned_hour_starts_fresh(self):
        clock_value = [datetime(2025, 7, 1, 23, 0)]
        tracker = AlertStateTracker(clock=lambda: clock_value[0])
        config = ThresholdConfig(1.5)

        assert tracker.evaluate(reading("14:00", 2.0), config) is not None
        clock_value[0] = datetime(2025, 7, 2, 0, 30)
        tracker.prune(datetime(2025, 7, 2))
        assert tracker.evaluate(reading("14:00", 2.0), config) is not None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
