"""HFP v2 topic parsing."""

from __future__ import annotations

from dataclasses import dataclass

# Field positions after splitting on "/", e.g.
# /hfp/v2/journey/ongoing/vp/bus/0022/00854/4611/1/Leppävaara/19:56/4150264/5/60;24/28/65/06
EVENT_TYPE_INDEX = 5
ROUTE_ID_INDEX = 9
NEXT_STOP_ID_INDEX = 13


@dataclass(frozen=True)
class HfpTopic:
    """Fields of an HFP topic used by the pipeline. Missing positions are None."""

    event_type: str | None
    route_id: str | None
    next_stop_id: str | None


def _field(parts: list[str], index: int) -> str | None:
    if index < len(parts) and parts[index] != "":
        return parts[index]
    return None


def parse_topic(topic: str) -> HfpTopic:
    """Extract event type, route and next stop from a topic.

    Short topics are not rejected here; the absent fields surface as failures
    in the stage that needs them.
    """
    parts = topic.split("/")
    return HfpTopic(
        event_type=_field(parts, EVENT_TYPE_INDEX),
        route_id=_field(parts, ROUTE_ID_INDEX),
        next_stop_id=_field(parts, NEXT_STOP_ID_INDEX),
    )
