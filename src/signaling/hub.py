"""Owner of the signaling state and its single event consumer.

All inbound traffic (attach, frames, detach) is queued here and handled by one
task in arrival order. Nothing else mutates the registry or the tracker.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

from config.settings import Settings, get_settings
from signaling.connection import ConnectionHandle
from signaling.lifecycle import ConnectionLifecycleManager
from signaling.registry import UserRegistry
from signaling.relay import SignalingRelay
from signaling.sessions import CallSessionTracker

LOGGER = logging.getLogger(__name__)

InboundKind = Literal["connect", "frame", "disconnect"]


@dataclass(slots=True)
class InboundEvent:
    kind: InboundKind
    connection: ConnectionHandle
    frame: str | bytes | None = None


class SignalingHub:
    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.registry = UserRegistry()
        self.tracker = CallSessionTracker(max_buffered_candidates=settings.max_buffered_candidates)
        self.relay = SignalingRelay(
            self.registry,
            self.tracker,
            report_errors=settings.report_relay_errors,
            buffer_ice_while_ringing=settings.buffer_ice_while_ringing,
            notify_peer_on_release=settings.notify_peer_on_disconnect,
        )
        self.lifecycle = ConnectionLifecycleManager(self.registry, self.relay)
        self._queue: asyncio.Queue[InboundEvent] = asyncio.Queue()
        self._consumer: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self) -> None:
        if self.running:
            return
        self._consumer = asyncio.create_task(self._run(), name="signaling-hub")
        LOGGER.info("Signaling hub started")

    async def stop(self) -> None:
        if self._consumer is None:
            return
        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None
        LOGGER.info("Signaling hub stopped")

    def connect(self, connection: ConnectionHandle) -> None:
        self._queue.put_nowait(InboundEvent("connect", connection))

    def submit(self, connection: ConnectionHandle, frame: str | bytes) -> None:
        self._queue.put_nowait(InboundEvent("frame", connection, frame))

    def disconnect(self, connection: ConnectionHandle) -> None:
        self._queue.put_nowait(InboundEvent("disconnect", connection))

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""

        await self._queue.join()

    def process(self, item: InboundEvent) -> None:
        if item.kind == "connect":
            self.lifecycle.connect(item.connection)
        elif item.kind == "disconnect":
            self.lifecycle.disconnect(item.connection)
        else:
            self.relay.dispatch_frame(item.connection, item.frame if item.frame is not None else "")

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                self.process(item)
            except Exception:
                LOGGER.exception("Unhandled error while processing %s event", item.kind)
            finally:
                self._queue.task_done()
