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
"""Domain models for the device automation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4


def utc_now() -> str:
    """UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


class JobKind(str, Enum):
    """What a job does on the device."""

    BACKUP = "backup"
    INSPECTION = "inspection"


class JobState(str, Enum):
    """Lifecycle states for a job."""

    CREATED = "created"
    CONNECTING = "connecting"
    DRIVING = "driving"
    SEGMENTING = "segmenting"
    SUCCESS = "success"
    FAILED = "failed"


class JobEvent(str, Enum):
    """Events that trigger state transitions."""

    CONNECT = "connect"
    SHELL_READY = "shell_ready"
    TRANSCRIPT_READY = "transcript_ready"
    SUCCEED = "succeed"
    FAIL = "fail"


@dataclass(frozen=True)
class JobTransition:
    """Single transition entry."""

    current: JobState
    event: JobEvent
    next_state: JobState


@dataclass(frozen=True)
class Credentials:
    """Login material, held only for the duration of a run."""

    host: str
    username: str
    password: str = field(repr=False)
    port: int = 22

    @property
    def is_complete(self) -> bool:
        return bool(
            self.host.strip() and self.username.strip() and self.password and self.port
        )

    @property
    def key(self) -> str:
        """Stable key for maps and logs."""
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class DeviceProfile:
    """Device identity plus optional credentials."""

    device_id: str
    name: str
    vendor: str
    credentials: Optional[Credentials] = None

    @property
    def has_credentials(self) -> bool:
        return self.credentials is not None and self.credentials.is_complete


@dataclass(frozen=True)
class CommandSpec:
    """One templated command. Opaque to the engine apart from its fields."""

    category: str
    command: str
    parse: Optional[str] = None
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.command


@dataclass
class Job:
    """One automation run against one device."""

    job_id: str
    device_id: str
    kind: JobKind
    commands: tuple[CommandSpec, ...]
    state: JobState = JobState.CREATED
    created_at: str = field(default_factory=utc_now)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    @classmethod
    def create(
        cls,
        device_id: str,
        kind: JobKind,
        commands: tuple[CommandSpec, ...] | list[CommandSpec] = (),
    ) -> "Job":
        return cls(
            job_id=str(uuid4()),
            device_id=device_id,
            kind=kind,
            commands=tuple(commands),
        )


@dataclass(frozen=True)
class ParsedResult:
    """Structured output returned by a result parser."""

    type: str
    data: dict[str, Any]
    original: str


@dataclass(frozen=True)
class ResultBlock:
    """Output of one executed command."""

    category: str
    name: str
    command: str
    type: str
    data: dict[str, Any]
    original: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "name": self.name,
            "command": self.command,
            "type": self.type,
            "data": self.data,
            "original": self.original,
        }


JobResult = dict[str, dict[str, ResultBlock]]


def count_blocks(result: JobResult) -> int:
    return sum(len(blocks) for blocks in result.values())


@dataclass(frozen=True)
class BackupRecord:
    """Backup artifact written for one device.

    Capture ends after a quiet window with no new output, not on a prompt
    match. A slow link or a device pause longer than that window can leave
    the file truncated, so the text is best-effort and not a verified full
    configuration.
    """

    id: str
    device_id: str
    device_name: str
    filename: str
    path: str
    timestamp: str
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "device_name": self.device_name,
            "filename": self.filename,
            "path": self.path,
            "timestamp": self.timestamp,
            "size": self.size,
        }


@dataclass
class JobOutcome:
    """Terminal result of one job."""

    job_id: str
    device_id: str
    kind: JobKind
    status: JobState
    result: JobResult = field(default_factory=dict)
    backup: Optional[BackupRecord] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    raw_log: Optional[ResultBlock] = None

    @property
    def succeeded(self) -> bool:
        return self.status == JobState.SUCCESS


@dataclass(frozen=True)
class HistoryEntry:
    """One completed job as kept in per-device history."""

    job_id: str
    kind: JobKind
    timestamp: str
    status: str
    result: Optional[JobResult] = None
    backup: Optional[BackupRecord] = None
    error: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: JobOutcome) -> "HistoryEntry":
        return cls(
            job_id=outcome.job_id,
            kind=outcome.kind,
            timestamp=utc_now(),
            status=outcome.status.value,
            result=outcome.result if outcome.succeeded else None,
            backup=outcome.backup,
            error=outcome.error,
        )
