"""Departure time normalization for routing API matching."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import TypeAdapter, ValidationError

from congestion_recorder.exceptions import DepartureNormalizationError
from congestion_recorder.services.hfp.identifiers import to_routing_direction_id
from congestion_recorder.services.hfp.payload import DeparturePayload

SECONDS_PER_DAY = 24 * 3600
DEFAULT_SERVICE_TIMEZONE = "Europe/Helsinki"

_timestamp_adapter = TypeAdapter(datetime)


@dataclass(frozen=True)
class Departure:
    """A departure expressed in routing API terms."""

    direction_id: int
    departure_date: str
    departure_time_seconds: int
    rolled_over: bool = False


def parse_timestamp(value: str | None) -> datetime:
    """Parse an HFP ISO-8601 timestamp into an aware UTC datetime."""
    if not value:
        msg = "Timestamp is missing"
        raise DepartureNormalizationError(msg)

    # Any fraction length is valid, e.g. "05:20:03.52Z"
    try:
        parsed = _timestamp_adapter.validate_python(value.strip())
    except ValidationError as exc:
        msg = f"Invalid timestamp {value!r}"
        raise DepartureNormalizationError(msg) from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_service_date(value: str | None) -> date:
    if not value:
        msg = "Service day is missing"
        raise DepartureNormalizationError(msg)
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        msg = f"Invalid service day {value!r}"
        raise DepartureNormalizationError(msg) from exc


def time_of_day_to_seconds(value: str | None) -> int:
    """Convert ``HH:MM`` or ``HH:MM:SS`` into seconds since midnight."""
    if not value:
        msg = "Departure time is missing"
        raise DepartureNormalizationError(msg)

    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        msg = f"Invalid departure time {value!r}"
        raise DepartureNormalizationError(msg)
    try:
        numbers = [int(part) for part in parts]
    except ValueError as exc:
        msg = f"Invalid departure time {value!r}"
        raise DepartureNormalizationError(msg) from exc

    hours, minutes = numbers[0], numbers[1]
    seconds = numbers[2] if len(numbers) == 3 else 0
    if hours < 0 or not 0 <= minutes < 60 or not 0 <= seconds < 60:
        msg = f"Invalid departure time {value!r}"
        raise DepartureNormalizationError(msg)
    return hours * 3600 + minutes * 60 + seconds


class DepartureTimeNormalizer:
    """Turns HFP departure fields into the (direction, date, seconds) triple.

    Service days run past local midnight, so a vehicle observed on the
    calendar day after its service day gets a departure time beyond 24:00,
    which is how the schedule stores those trips.
    """

    def __init__(self, service_timezone: str = DEFAULT_SERVICE_TIMEZONE) -> None:
        try:
            self._tz = ZoneInfo(service_timezone)
        except ZoneInfoNotFoundError as exc:
            msg = f"Unknown service timezone {service_timezone!r}"
            raise ValueError(msg) from exc

    def should_roll_over(self, service_date: date, seen_at: datetime) -> bool:
        """True when the observation falls on a later local day than the service day."""
        return seen_at.astimezone(self._tz).date() > service_date

    def normalize(self, payload: DeparturePayload) -> Departure:
        """Build the routing API departure for an HFP payload.

        Raises:
            DepartureNormalizationError: A required field is missing or invalid.
        """
        direction_id = to_routing_direction_id(payload.direction)
        service_date = parse_service_date(payload.departure_date)
        seen_at = parse_timestamp(payload.seen_at)
        rolled_over = self.should_roll_over(service_date, seen_at)

        seconds = time_of_day_to_seconds(payload.departure_time)
        if rolled_over:
            seconds += SECONDS_PER_DAY

        return Departure(
            direction_id=direction_id,
            departure_date=service_date.isoformat(),
            departure_time_seconds=seconds,
            rolled_over=rolled_over,
        )
