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
"""Bounded per-device history of completed jobs."""

from __future__ import annotations

from collections import deque
from threading import Lock

from netops.app.domain.models import HistoryEntry

HISTORY_LIMIT = 20


class InMemoryHistoryStore:
    """Most-recent-first entries per device, oldest dropped past the cap."""

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        self._lock = Lock()
        self._limit = limit
        self._entries: dict[str, deque[HistoryEntry]] = {}

    def append(self, device_id: str, entry: HistoryEntry) -> None:
        with self._lock:
            entries = self._entries.setdefault(device_id, deque(maxlen=self._limit))
            entries.appendleft(entry)

    def get(self, device_id: str) -> list[HistoryEntry]:
        with self._lock:
            return list(self._entries.get(device_id, ()))
