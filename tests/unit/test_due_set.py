"""Tests for due-set selection."""

from __future__ import annotations

from datetime import datetime

import pytest

from monitoring.monitor import is_due, select_due
from tests.fakes import make_monitor
from utils.helpers import TimeHelper


class TestIsDue:
    """A monitor is due when minute % frequency == offset."""

    @pytest.mark.parametrize(("frequency", "offset"), [(1, 0), (5, 2), (7, 6), (60, 0), (1440, 1439)])
    def test_due_minutes_of_a_day(self, frequency: int, offset: int) -> None:
        """Over one day the due minutes are exactly offset, offset + f, ..."""
        monitor = make_monitor(frequency=frequency, offset=offset)

        due = {minute for minute in range(1440) if is_due(monitor, minute)}

        assert due == set(range(offset, 1440, frequency))

    def test_every_minute_monitor_always_due(self) -> None:
        monitor = make_monitor(frequency=1, offset=0)
        assert all(is_due(monitor, minute) for minute in range(1440))

    def test_frequency_not_dividing_a_day_restarts_at_midnight(self) -> None:
        """Schedules are anchored to 00:00 UTC, not to the previous run."""
        monitor = make_monitor(frequency=7, offset=0)

        assert is_due(monitor, 1428)
        assert not is_due(monitor, 1434)
        assert is_due(monitor, 0)
        assert not is_due(monitor, 1)


class TestSelectDue:
    def test_keeps_input_order(self) -> None:
        monitors = [
            make_monitor(id="a", frequency=5, offset=2),
            make_monitor(id="b", frequency=1, offset=0),
            make_monitor(id="c", frequency=5, offset=3),
            make_monitor(id="d", frequency=10, offset=7),
        ]

        due = select_due(monitors, 17)

        assert [m.id for m in due] == ["a", "b", "d"]

    def test_empty_input(self) -> None:
        assert select_due([], 0) == []

    def test_minute_of_day_from_timestamp(self) -> None:
        """The tick minute is the number of minutes since 00:00 UTC."""
        assert TimeHelper.minute_of_day(datetime(2024, 5, 1, 0, 0, 59)) == 0
        assert TimeHelper.minute_of_day(datetime(2024, 5, 1, 13, 7)) == 787
        assert TimeHelper.minute_of_day(datetime(2024, 5, 1, 23, 59)) == 1439
