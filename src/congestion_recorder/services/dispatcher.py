"""Per-message orchestration of the recording pipeline."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

from congestion_recorder.exceptions import RecorderError
from congestion_recorder.logging import get_logger
from congestion_recorder.services.hfp.departure import parse_timestamp
from congestion_recorder.services.hfp.identifiers import is_end_of_line
from congestion_recorder.services.hfp.payload import parse_payload
from congestion_recorder.services.hfp.topic import parse_topic

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from congestion_recorder.services.hfp.departure import DepartureTimeNormalizer
    from congestion_recorder.services.routing.resolvers import (
        RoutePatternIdResolver,
        TripIdResolver,
    )
    from congestion_recorder.services.storage.materializer import EntityMaterializer
    from congestion_recorder.services.storage.recorder import TripStopRecorder

logger = get_logger(__name__)

# Pipeline stages, in execution order
STAGE_PAYLOAD = "payload"
STAGE_ROUTE_PATTERN_ID = "route_pattern_id"
STAGE_ROUTE_PATTERN = "route_pattern"
STAGE_STOP = "stop"
STAGE_TRIP_ID = "trip_id"
STAGE_TRIP = "trip"
STAGE_TRIP_STOP = "trip_stop"

STAGE_FAILURE_MESSAGES = {
    STAGE_PAYLOAD: "Failed to parse vehicle position payload",
    STAGE_ROUTE_PATTERN_ID: "Failed to find vehicle position route pattern ID",
    STAGE_ROUTE_PATTERN: "Failed to get or create route pattern",
    STAGE_STOP: "Failed to get or create next stop",
    STAGE_TRIP_ID: "Failed to find vehicle position trip ID",
    STAGE_TRIP: "Failed to get or create trip",
    STAGE_TRIP_STOP: "Failed to record trip stop",
}

OUTCOME_RECORDED = "recorded"
OUTCOME_END_OF_LINE = "skipped_end_of_line"

_MAX_LOGGED_PAYLOAD = 500


def failure_outcome(stage: str) -> str:
    return f"failed_{stage}"


class MessageDispatcher:
    """Runs one HFP message through parse, resolve, materialize and record.

    Stages run strictly in order and the first failure drops the message:
    it is logged with the stage that failed and never raised, so one bad
    message cannot affect others in flight. Side effects of stages that
    already succeeded are kept.

    Usage:
        dispatcher = MessageDispatcher(
            session_factory=database.session_factory,
            normalizer=DepartureTimeNormalizer(),
            route_pattern_resolver=RoutePatternIdResolver(client),
            trip_resolver=TripIdResolver(client),
            materializer=EntityMaterializer(),
            recorder=TripStopRecorder(),
        )
        outcome = await dispatcher.handle_message(topic, payload)
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], AsyncSession],
        normalizer: DepartureTimeNormalizer,
        route_pattern_resolver: RoutePatternIdResolver,
        trip_resolver: TripIdResolver,
        materializer: EntityMaterializer,
        recorder: TripStopRecorder,
    ) -> None:
        self._session_factory = session_factory
        self._normalizer = normalizer
        self._route_pattern_resolver = route_pattern_resolver
        self._trip_resolver = trip_resolver
        self._materializer = materializer
        self._recorder = recorder
        self._outcomes: Counter[str] = Counter()

    @property
    def outcomes(self) -> dict[str, int]:
        """Number of handled messages per outcome."""
        return dict(self._outcomes)

    async def handle_message(self, topic: str, message: bytes | str) -> str:
        """Process a single feed message and return its outcome label."""
        outcome = await self._process(topic, message)
        self._outcomes[outcome] += 1
        return outcome

    async def _process(self, topic: str, message: bytes | str) -> str:
        hfp_topic = parse_topic(topic)
        if is_end_of_line(hfp_topic.next_stop_id):
            return OUTCOME_END_OF_LINE

        log = logger.bind(topic=topic)
        stage = STAGE_PAYLOAD

        try:
            payload = parse_payload(message, hfp_topic.event_type)

            stage = STAGE_ROUTE_PATTERN_ID
            departure = self._normalizer.normalize(payload)
            log = log.bind(
                route_id=hfp_topic.route_id,
                direction_id=departure.direction_id,
                departure_date=departure.departure_date,
                departure_time_seconds=departure.departure_time_seconds,
            )
            route_pattern_id = await self._route_pattern_resolver.find_id_by_departure(
                hfp_topic.route_id,
                departure.direction_id,
                departure.departure_date,
                departure.departure_time_seconds,
            )
            log = log.bind(route_pattern_id=route_pattern_id)

            # No session is held open across the remote trip lookup.
            async with self._session_factory() as session:
                stage = STAGE_ROUTE_PATTERN
                route_pattern = await self._materializer.get_or_create_route_pattern(
                    session, route_pattern_id
                )

                stage = STAGE_STOP
                stop = await self._materializer.get_or_create_stop(
                    session, hfp_topic.next_stop_id
                )
                await self._materializer.ensure_stop_associated(
                    session, route_pattern.route_pattern_id, stop.stop_id
                )
                stop_id = stop.stop_id
            log = log.bind(stop_id=stop_id)

            stage = STAGE_TRIP_ID
            trip_id = await self._trip_resolver.find_id_by_departure(
                hfp_topic.route_id,
                departure.direction_id,
                departure.departure_date,
                departure.departure_time_seconds,
            )
            log = log.bind(trip_id=trip_id)

            async with self._session_factory() as session:
                stage = STAGE_TRIP
                trip = await self._materializer.get_or_create_trip(session, trip_id)

                stage = STAGE_TRIP_STOP
                await self._recorder.record_trip_stop(
                    session,
                    trip.trip_id,
                    stop_id,
                    parse_timestamp(payload.seen_at),
                    payload.has_doors_open,
                )

        except RecorderError as exc:
            self._log_failure(log, stage, exc, message)
            return failure_outcome(stage)
        except Exception as exc:
            self._log_failure(log, stage, exc, message, unexpected=True)
            return failure_outcome(stage)

        log.debug("Trip stop recorded", doors_open=payload.has_doors_open)
        return OUTCOME_RECORDED

    @staticmethod
    def _log_failure(
        log: Any,
        stage: str,
        exc: Exception,
        message: bytes | str,
        *,
        unexpected: bool = False,
    ) -> None:
        fields: dict[str, Any] = {
            "stage": stage,
            "reason": str(exc),
            "error_type": type(exc).__name__,
        }
        if stage == STAGE_PAYLOAD:
            raw = message.decode("utf-8", errors="replace") if isinstance(message, bytes) else message
            fields["payload"] = raw[:_MAX_LOGGED_PAYLOAD]
        if unexpected:
            fields["exc_info"] = exc

        log.error(STAGE_FAILURE_MESSAGES[stage], **fields)
