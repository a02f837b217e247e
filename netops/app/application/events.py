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
"""Progress event contracts."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Protocol, Union

from netops.app.domain.models import utc_now


@dataclass(frozen=True)
class ProgressEvent:
    """Lifecycle event for one job. Transient, never stored."""

    device_id: str
    job_id: str
    progress: int
    status: str
    result: Optional[dict[str, Any]] = None
    message: Optional[str] = None
    type: str = "progress"
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DeviceTickResult:
    """What happened to one device during a scheduler tick."""

    device_id: str
    device_name: str
    status: str
    job_id: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class BatchSummary:
    """Emitted once after the last device of a tick."""

    task_id: str
    kind: str
    total_devices: int
    attempted: int
    skipped: int
    success_count: int
    failure_count: int
    results: tuple[DeviceTickResult, ...] = ()
    type: str = "batch_summary"
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self) | {"results": [asdict(r) for r in self.results]}


EngineEvent = Union[ProgressEvent, BatchSummary]


class EventPublisher(Protocol):
    """Publisher for engine events."""

    def publish(self, event: EngineEvent) -> None:
        """Publish one event. Must not block or raise."""
