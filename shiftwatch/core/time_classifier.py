"""Map event timestamps to a local calendar date and duty shift."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from shiftwatch.constants.activity import Shift

DEFAULT_OPERATING_TIMEZONE = "Europe/Belgrade"

MORNING_START_HOUR = 7
AFTERNOON_START_HOUR = 15
NIGHT_START_HOUR = 23


@dataclass(frozen=True)
class ClassifiedTime:
    activity_date: str
    shift: Shift


def shift_for_hour(hour: int) -> Shift:
    """7:00-14:59 morning, 15:00-22:59 afternoon, otherwise night."""
    if MORNING_START_HOUR <= hour < AFTERNOON_START_HOUR:
        return Shift.MORNING
    if AFTERNOON_START_HOUR <= hour < NIGHT_START_HOUR:
        return Shift.AFTERNOON
    return Shift.NIGHT


def to_datetime(epoch_seconds: float) -> datetime:
    """Epoch seconds as an aware UTC datetime."""
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)


class TimeClassifier:
    """
    Classify instants in a fixed operating timezone.

    The zone may observe DST; zoneinfo applies the offset in effect at each
    instant, so shifts always follow the local wall clock.
    """

    def __init__(self, timezone_name: str = DEFAULT_OPERATING_TIMEZONE) -> None:
        self._zone = ZoneInfo(timezone_name)

    @property
    def zone(self) -> ZoneInfo:
        return self._zone

    def local_time(self, epoch_seconds: float) -> datetime:
        return to_datetime(epoch_seconds).astimezone(self._zone)

    def classify(self, epoch_seconds: float) -> ClassifiedTime:
        local = self.local_time(epoch_seconds)
        return ClassifiedTime(
            activity_date=local.strftime("%Y-%m-%d"),
            shift=shift_for_hour(local.hour),
        )
