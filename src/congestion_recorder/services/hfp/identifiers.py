"""Translation between HFP realtime identifiers and routing API identifiers."""

from __future__ import annotations

from congestion_recorder.exceptions import DepartureNormalizationError, ParseError

GTFS_FEED_ID = "HSL"

# Next-stop value published once a vehicle has passed the final stop.
END_OF_LINE_STOP_ID = "EOL"

# HFP publishes directions as 1/2, GTFS and the routing API use 0/1.
REALTIME_TO_ROUTING_DIRECTION = {
    1: 0,
    2: 1,
}


def is_end_of_line(next_stop_id: str | None) -> bool:
    """True when the vehicle has no next stop on its current journey."""
    return next_stop_id == END_OF_LINE_STOP_ID


def to_gtfs_id(realtime_id: str | None, feed_id: str = GTFS_FEED_ID) -> str:
    """Prefix a realtime route or stop id with its GTFS feed id.

    >>> to_gtfs_id("1007")
    'HSL:1007'
    """
    if realtime_id is None or not str(realtime_id).strip():
        msg = "Realtime identifier is missing"
        raise ParseError(msg)

    value = str(realtime_id).strip()
    if value.startswith(f"{feed_id}:"):
        return value
    return f"{feed_id}:{value}"


def to_routing_direction_id(realtime_direction_id: str | int | None) -> int:
    """Convert an HFP direction (1 or 2) into a routing API direction (0 or 1)."""
    try:
        direction = int(realtime_direction_id)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        msg = f"Invalid realtime direction id {realtime_direction_id!r}"
        raise DepartureNormalizationError(msg) from exc

    if direction not in REALTIME_TO_ROUTING_DIRECTION:
        msg = f"Unknown realtime direction id {realtime_direction_id!r}"
        raise DepartureNormalizationError(msg)
    return REALTIME_TO_ROUTING_DIRECTION[direction]
