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
"""API schemas for the automation service."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from netops.app.domain.models import CommandSpec, Credentials, DeviceProfile


class DevicePayload(BaseModel):
    """Device identity with optional login material."""

    id: str = Field(min_length=1, max_length=200)
    name: str = Field(min_length=1, max_length=200)
    vendor: str = Field(default="huawei", max_length=50)
    host: str = Field(default="", max_length=255)
    port: int = Field(default=22, ge=1, le=65535)
    username: Optional[str] = Field(default=None, max_length=100)
    password: Optional[str] = Field(default=None, max_length=200)

    def to_device(self) -> DeviceProfile:
        credentials = None
        if self.host.strip():
            credentials = Credentials(
                host=self.host.strip(),
                port=self.port,
                username=self.username or "",
                password=self.password or "",
            )
        return DeviceProfile(
            device_id=self.id,
            name=self.name,
            vendor=self.vendor,
            credentials=credentials,
        )


class CommandPayload(BaseModel):
    """One inspection command."""

    category: str = Field(min_length=1, max_length=100)
    cmd: str = Field(min_length=1, max_length=500)
    parse: Optional[str] = None
    name: Optional[str] = None

    def to_spec(self) -> CommandSpec:
        return CommandSpec(
            category=self.category, command=self.cmd, parse=self.parse, name=self.name
        )


class InspectionRequest(BaseModel):
    """Payload to start an inspection."""

    device: DevicePayload
    commands: List[CommandPayload] = Field(min_length=1)
    categories: Optional[List[str]] = None


class BackupRequest(BaseModel):
    """Payload to back up one device."""

    device: DevicePayload


class DeviceTestRequest(BaseModel):
    device: DevicePayload


class DeviceTestResponse(BaseModel):
    success: bool
    error: Optional[str] = None


class JobResponse(BaseModel):
    """Job state plus its outcome once terminal."""

    job_id: str
    device_id: str
    kind: str
    state: str
    created_at: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    result: Optional[Dict[str, Dict[str, Any]]] = None
    backup: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None


class HistoryEntryResponse(BaseModel):
    job_id: str
    kind: str
    timestamp: str
    status: str
    result: Optional[Dict[str, Dict[str, Any]]] = None
    backup: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class BackupFileResponse(BaseModel):
    """A saved backup file. Contents are best-effort captures and may be truncated."""

    filename: str
    path: str
    size: int
    modified: str


class BackupContentResponse(BaseModel):
    path: str
    content: str


class BackupDiffRequest(BaseModel):
    old_path: str = Field(min_length=1)
    new_path: str = Field(min_length=1)


class BackupDiffResponse(BaseModel):
    added: int
    removed: int
    unchanged: int
    changed: bool
    patch: str


class ScheduledTaskRequest(BaseModel):
    """Payload to register a cron task."""

    cron_expression: str = Field(min_length=1, max_length=200)
    devices: List[DevicePayload] = Field(min_length=1)
    kind: Literal["backup", "inspection"] = "backup"
    commands: List[CommandPayload] = Field(default_factory=list)


class DeviceTickResponse(BaseModel):
    device_id: str
    device_name: str
    status: str
    job_id: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None


class BatchSummaryResponse(BaseModel):
    task_id: str
    kind: str
    total_devices: int
    attempted: int
    skipped: int
    success_count: int
    failure_count: int
    results: List[DeviceTickResponse]
    timestamp: str


class ScheduledTaskResponse(BaseModel):
    task_id: str
    cron_expression: str
    kind: str
    device_ids: List[str]
    created_at: str
    next_run_time: Optional[str] = None
    last_run_at: Optional[str] = None
    last_summary: Optional[BatchSummaryResponse] = None


class TerminalConnectRequest(BaseModel):
    """Login material for an interactive terminal."""

    host: str = Field(min_length=1, max_length=255)
    port: int = Field(default=22, ge=1, le=65535)
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=200)

    def to_credentials(self) -> Credentials:
        return Credentials(
            host=self.host.strip(),
            port=self.port,
            username=self.username,
            password=self.password,
        )


class TerminalConnectResponse(BaseModel):
    session_id: str


class TerminalInputRequest(BaseModel):
    """Raw keystrokes; include the newline to submit a line."""

    command: str = Field(max_length=4096)


class TerminalDisconnectRequest(BaseModel):
    session_id: str = Field(min_length=1)


class PingOptionsPayload(BaseModel):
    count: int = Field(default=1, ge=1, le=10)
    timeout: int = Field(default=2000, ge=100, le=30000, description="milliseconds")
    packet_size: int = Field(default=56, ge=1, le=65500)
    tcp: bool = False
    tcp_port: int = Field(default=80, ge=1, le=65535)


class PingRequest(BaseModel):
    """Targets to check in one batch."""

    ips: List[str] = Field(min_length=1, max_length=1024)
    options: PingOptionsPayload = Field(default_factory=PingOptionsPayload)


class PingResultResponse(BaseModel):
    ip: str
    host: str
    status: str
    time: Optional[Dict[str, float]] = None
    ttl: Optional[int] = None
    error: str = ""
    raw_output: str = ""
