"""MQTT subscription to the HFP feed, dispatching each message as its own task."""

from __future__ import annotations

import asyncio
import itertools
from typing import TYPE_CHECKING, Any

import paho.mqtt.client as mqtt

from congestion_recorder.logging import bind_context, get_logger

if TYPE_CHECKING:
    from congestion_recorder.services.dispatcher import MessageDispatcher

logger = get_logger(__name__)

DEFAULT_KEEPALIVE_SEC = 60


class HfpFeedConsumer:
    """Subscribes to HFP topics and hands every message to the dispatcher.

    paho-mqtt runs its network loop on a background thread; messages are
    moved onto the asyncio loop and each one is dispatched as an independent
    task. With ``max_in_flight`` at 0 nothing bounds how many run at once;
    a positive value caps it with a semaphore.

    Usage:
        consumer = HfpFeedConsumer(dispatcher, host="mqtt.hsl.fi", topics=[...])
        await consumer.start()
        await consumer.stop()   # waits for in-flight messages
    """

    def __init__(
        self,
        dispatcher: MessageDispatcher,
        *,
        host: str,
        port: int = 1883,
        topics: list[str],
        client_id: str = "",
        keepalive: int = DEFAULT_KEEPALIVE_SEC,
        max_in_flight: int = 0,
    ) -> None:
        self._dispatcher = dispatcher
        self._host = host
        self._port = port
        self._topics = topics
        self._client_id = client_id
        self._keepalive = keepalive
        self._semaphore = asyncio.Semaphore(max_in_flight) if max_in_flight > 0 else None

        self._loop: asyncio.AbstractEventLoop | None = None
        self._client: mqtt.Client | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._message_ids = itertools.count(1)
        self._running = False
        self._connected = False
        self._received_count = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def received_count(self) -> int:
        return self._received_count

    async def start(self) -> None:
        """Connect to the broker and start the network loop."""
        if self._running:
            logger.warning("Consumer already running, ignoring start request")
            return

        self._loop = asyncio.get_running_loop()
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
        )
        client.enable_logger()
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        client.reconnect_delay_set(min_delay=1, max_delay=60)

        client.connect_async(self._host, self._port, keepalive=self._keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        logger.info(
            "HFP consumer started",
            host=self._host,
            port=self._port,
            topics=self._topics,
        )

    async def stop(self) -> None:
        """Disconnect and wait for messages already being dispatched."""
        if not self._running:
            return

        self._running = False
        client = self._client
        self._client = None
        if client is not None:
            try:
                client.disconnect()
            finally:
                client.loop_stop()

        await self.drain()
        self._connected = False
        logger.info("HFP consumer stopped", received=self._received_count)

    async def drain(self) -> None:
        """Wait until every scheduled dispatch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def get_status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "connected": self._connected,
            "in_flight": self.in_flight,
            "received": self._received_count,
            "topics": list(self._topics),
        }

    def submit(self, topic: str, payload: bytes) -> None:
        """Schedule a message for dispatch. Must be called on the event loop thread."""
        self._received_count += 1
        task = asyncio.create_task(self._dispatch(next(self._message_ids), topic, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, message_id: int, topic: str, payload: bytes) -> None:
        bind_context(message_id=message_id)
        if self._semaphore is None:
            await self._dispatcher.handle_message(topic, payload)
            return
        async with self._semaphore:
            await self._dispatcher.handle_message(topic, payload)

    # paho-mqtt callbacks, invoked on the network thread

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.is_failure:
            logger.warning("MQTT connect failed", reason=str(reason_code))
            return

        self._connected = True
        client.subscribe([(topic, 0) for topic in self._topics])
        logger.info("MQTT connected, subscribed", topics=self._topics)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        self._connected = False
        if self._running:
            logger.warning("MQTT disconnected, reconnecting", reason=str(reason_code))

    def _on_message(self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self.submit, msg.topic, msg.payload)
