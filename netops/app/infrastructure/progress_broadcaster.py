# Copyright 2026 icecake0141
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.
"""Fire-and-forget fan-out of engine events to live subscribers."""

from __future__ import annotations

import asyncio
import logging
from itertools import count
from threading import Lock
from typing import Optional

from netops.app.application.events import EngineEvent, EventPublisher, ProgressEvent

logger = logging.getLogger(__name__)


class Subscription:
    """Bounded inbox of one observer. Full inboxes drop new events."""

    def __init__(self, subscription_id: int, device_id: Optional[str], maxsize: int):
        self.subscription_id = subscription_id
        self.device_id = device_id
        self.dropped = 0
        self._queue: asyncio.Queue[EngineEvent] = asyncio.Queue(maxsize=maxsize)

    def wants(self, event: EngineEvent) -> bool:
        if self.device_id is None:
            return True
        # Batch summaries span devices and always go out.
        return not isinstance(event, ProgressEvent) or event.device_id == self.device_id

    def offer(self, event: EngineEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1

    def pending(self) -> int:
        return self._queue.qsize()

    async def get(self) -> EngineEvent:
        return await self._queue.get()


class ProgressBroadcaster(EventPublisher):
    """At-most-once delivery to whoever is subscribed right now; no replay."""

    def __init__(self, queue_size: int = 256) -> None:
        self._lock = Lock()
        self._subscribers: dict[int, Subscription] = {}
        self._ids = count(1)
        self.queue_size = queue_size

    def subscribe(self, device_id: Optional[str] = None) -> Subscription:
        with self._lock:
            subscription = Subscription(next(self._ids), device_id, self.queue_size)
            self._subscribers[subscription.subscription_id] = subscription
            return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscribers.pop(subscription.subscription_id, None)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: EngineEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers.values())
        for subscription in subscribers:
            try:
                if subscription.wants(event):
                    subscription.offer(event)
            except Exception as exc:
                logger.warning(
                    "Dropping event for subscriber %s: %s",
                    subscription.subscription_id,
                    exc,
                )
