"""Explicit construction of the recorder's long-lived dependencies."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from congestion_recorder.database import Database
from congestion_recorder.logging import get_logger
from congestion_recorder.services.dispatcher import MessageDispatcher
from congestion_recorder.services.feed.consumer import HfpFeedConsumer
from congestion_recorder.services.hfp.departure import DepartureTimeNormalizer
from congestion_recorder.services.routing.client import RoutingApiClient
from congestion_recorder.services.routing.resolvers import RoutePatternIdResolver, TripIdResolver
from congestion_recorder.services.storage.materializer import EntityMaterializer
from congestion_recorder.services.storage.recorder import TripStopRecorder

if TYPE_CHECKING:
    from congestion_recorder.config import Settings

logger = get_logger(__name__)


class Recorder:
    """Holds the database, the routing API client, the dispatcher and the consumer.

    Everything is built here from settings and passed down explicitly; no
    component reads configuration or module-level singletons on its own.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.database = Database(
            settings.database_url,
            echo=settings.debug,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        self.http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.routing_api_timeout_sec),
            follow_redirects=True,
        )
        routing_client = RoutingApiClient(
            self.http_client,
            settings.routing_api_url,
            subscription_key=settings.digitransit_subscription_key,
        )
        self.dispatcher = MessageDispatcher(
            session_factory=self.database.session_factory,
            normalizer=DepartureTimeNormalizer(settings.service_timezone),
            route_pattern_resolver=RoutePatternIdResolver(routing_client),
            trip_resolver=TripIdResolver(routing_client),
            materializer=EntityMaterializer(),
            recorder=TripStopRecorder(),
        )
        self.consumer = HfpFeedConsumer(
            self.dispatcher,
            host=settings.mqtt_host,
            port=settings.mqtt_port,
            topics=settings.mqtt_topic_list,
            client_id=settings.mqtt_client_id,
            keepalive=settings.mqtt_keepalive_sec,
            max_in_flight=settings.dispatch_max_in_flight,
        )

    async def start(self) -> None:
        if self.settings.database_create_schema:
            await self.database.create_schema()
        if self.settings.consumer_auto_start:
            await self.consumer.start()

    async def stop(self) -> None:
        try:
            await self.consumer.stop()
        finally:
            await self.http_client.aclose()
            await self.database.close()
        logger.info("Recorder stopped", outcomes=self.dispatcher.outcomes)
