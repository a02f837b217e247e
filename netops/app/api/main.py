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
"""FastAPI entrypoint for the automation engine."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from netops.app.api.schemas import (
    BackupContentResponse,
    BackupDiffRequest,
    BackupDiffResponse,
    BackupFileResponse,
    BackupRequest,
    BatchSummaryResponse,
    DeviceTestRequest,
    DeviceTestResponse,
    DeviceTickResponse,
    HistoryEntryResponse,
    InspectionRequest,
    JobResponse,
    PingRequest,
    PingResultResponse,
    ScheduledTaskRequest,
    ScheduledTaskResponse,
    TerminalConnectRequest,
    TerminalConnectResponse,
    TerminalDisconnectRequest,
    TerminalInputRequest,
)
from netops.app.application.events import BatchSummary
from netops.app.application.job_runner import JobRunner, RunnerConfig, result_payload
from netops.app.application.scheduler import BatchScheduler, TaskInfo
from netops.app.application.session_driver import SessionDriver, ShellConnector
from netops.app.application.terminal_relay import TerminalRelay
from netops.app.domain.errors import AuthFailure, SessionError
from netops.app.domain.models import (
    DeviceProfile,
    HistoryEntry,
    Job,
    JobKind,
    JobOutcome,
)
from netops.app.infrastructure.asyncssh_shell import AsyncSSHShellConnector
from netops.app.infrastructure.connection_probes import (
    NetmikoConnectionProbe,
    SimulatedConnectionProbe,
)
from netops.app.infrastructure.file_backup_store import FileBackupStore
from netops.app.infrastructure.in_memory_history_store import InMemoryHistoryStore
from netops.app.infrastructure.in_memory_job_store import InMemoryJobStore
from netops.app.infrastructure.progress_broadcaster import ProgressBroadcaster
from netops.app.infrastructure.reachability import PingOptions, ReachabilityChecker
from netops.app.infrastructure.run_coordinator import RunCoordinator
from netops.app.infrastructure.simulated_shell import SimulatedShellConnector
from netops.app.infrastructure.vendor_result_parser import VendorResultParser
from netops.app.settings import EngineSettings, configure_logging, load_settings

logger = logging.getLogger(__name__)


class ConnectionProbe(Protocol):
    def probe(self, device: DeviceProfile) -> tuple[bool, str | None]:
        """Return (reachable, error message)."""


@dataclass
class Services:
    """Everything one application instance owns."""

    settings: EngineSettings
    job_store: InMemoryJobStore
    history: InMemoryHistoryStore
    broadcaster: ProgressBroadcaster
    backup_store: FileBackupStore
    runner: JobRunner
    scheduler: BatchScheduler
    coordinator: RunCoordinator
    probe: ConnectionProbe
    relay: TerminalRelay
    reachability: ReachabilityChecker


def build_services(
    settings: EngineSettings,
    connector: Optional[ShellConnector] = None,
    probe: Optional[ConnectionProbe] = None,
) -> Services:
    """Wire the engine from settings; ``connector`` overrides the driver mode."""
    simulated = settings.driver_mode == "simulated"
    if connector is None:
        connector = SimulatedShellConnector() if simulated else AsyncSSHShellConnector()
    if probe is None:
        probe = SimulatedConnectionProbe() if simulated else NetmikoConnectionProbe()

    history = InMemoryHistoryStore()
    broadcaster = ProgressBroadcaster()
    backup_store = FileBackupStore(settings.backup_root)
    runner = JobRunner(
        driver=SessionDriver(connector),
        parser=VendorResultParser(),
        backup_store=backup_store,
        history=history,
        publisher=broadcaster,
        config=RunnerConfig(
            command_delay=settings.command_delay,
            grace_period=settings.grace_period,
            inactivity_timeout=settings.inactivity_timeout,
            job_timeout=settings.job_timeout,
            connect_timeout=settings.connect_timeout,
            pagination_pattern=settings.pagination_pattern,
        ),
    )
    scheduler = BatchScheduler(
        runner=runner,
        publisher=broadcaster,
        device_delay=settings.device_delay,
        timezone=settings.scheduler_timezone,
    )
    return Services(
        settings=settings,
        job_store=InMemoryJobStore(),
        history=history,
        broadcaster=broadcaster,
        backup_store=backup_store,
        runner=runner,
        scheduler=scheduler,
        coordinator=RunCoordinator(),
        probe=probe,
        relay=TerminalRelay(connector, connect_timeout=settings.connect_timeout),
        reachability=ReachabilityChecker(),
    )


def to_response(job: Job, outcome: Optional[JobOutcome] = None) -> JobResponse:
    """Convert domain model to API response."""
    response = JobResponse(
        job_id=job.job_id,
        device_id=job.device_id,
        kind=job.kind.value,
        state=job.state.value,
        created_at=job.created_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
    )
    if outcome is not None:
        response.result = result_payload(outcome) if outcome.succeeded else None
        response.backup = outcome.backup.to_dict() if outcome.backup else None
        response.error = outcome.error
        response.error_kind = outcome.error_kind
    return response


def _history_response(entry: HistoryEntry) -> HistoryEntryResponse:
    return HistoryEntryResponse(
        job_id=entry.job_id,
        kind=entry.kind.value,
        timestamp=entry.timestamp,
        status=entry.status,
        result=(
            {
                category: {name: block.to_dict() for name, block in blocks.items()}
                for category, blocks in entry.result.items()
            }
            if entry.result is not None
            else None
        ),
        backup=entry.backup.to_dict() if entry.backup else None,
        error=entry.error,
    )


def _task_response(
    info: TaskInfo, summary: Optional[BatchSummary] = None
) -> ScheduledTaskResponse:
    return ScheduledTaskResponse(
        task_id=info.task_id,
        cron_expression=info.cron_expression,
        kind=info.kind,
        device_ids=list(info.device_ids),
        created_at=info.created_at,
        next_run_time=info.next_run_time,
        last_run_at=info.last_run_at,
        last_summary=_summary_response(summary) if summary else None,
    )


def _summary_response(summary: BatchSummary) -> BatchSummaryResponse:
    return BatchSummaryResponse(
        task_id=summary.task_id,
        kind=summary.kind,
        total_devices=summary.total_devices,
        attempted=summary.attempted,
        skipped=summary.skipped,
        success_count=summary.success_count,
        failure_count=summary.failure_count,
        results=[
            DeviceTickResponse(
                device_id=r.device_id,
                device_name=r.device_name,
                status=r.status,
                job_id=r.job_id,
                error=r.error,
                reason=r.reason,
            )
            for r in summary.results
        ],
        timestamp=summary.timestamp,
    )


async def _wait_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


def create_app(services: Services) -> FastAPI:
    """Build the HTTP/WebSocket surface around one set of services."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        services.scheduler.start()
        try:
            yield
        finally:
            services.scheduler.shutdown()
            await services.relay.shutdown()
            await services.coordinator.shutdown()

    app = FastAPI(
        title="Network Device Automation Engine",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    async def _run_and_store(job: Job, device: DeviceProfile) -> JobOutcome:
        outcome = await services.runner.run(job, device)
        services.job_store.save_outcome(outcome)
        return outcome

    @app.get("/health")
    def health() -> dict[str, str]:
        """Simple health endpoint."""
        return {"status": "ok"}

    @app.post("/api/inspections", response_model=JobResponse)
    async def start_inspection(payload: InspectionRequest) -> JobResponse:
        """Start an inspection in the background and return the job."""
        specs = [command.to_spec() for command in payload.commands]
        if payload.categories:
            wanted = set(payload.categories)
            specs = [spec for spec in specs if spec.category in wanted]
        if not specs:
            raise HTTPException(status_code=400, detail="No commands match the categories")
        device = payload.device.to_device()
        job = Job.create(device.device_id, JobKind.INSPECTION, specs)
        services.job_store.save(job)
        services.coordinator.start(job.job_id, _run_and_store(job, device))
        return to_response(job)

    @app.get("/api/jobs/{job_id}", response_model=JobResponse)
    def get_job(job_id: str) -> JobResponse:
        """Fetch job details."""
        job = services.job_store.get(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return to_response(job, services.job_store.get_outcome(job_id))

    @app.get(
        "/api/inspection/history/{device_id}",
        response_model=list[HistoryEntryResponse],
    )
    def device_history(device_id: str) -> list[HistoryEntryResponse]:
        """Completed jobs for one device, most recent first."""
        return [_history_response(entry) for entry in services.history.get(device_id)]

    @app.post("/api/backups", response_model=JobResponse)
    async def run_backup(payload: BackupRequest) -> JobResponse:
        """Back up one device and wait for the result.

        The capture ends after a quiet window with no new output, so a very
        large configuration on a slow link may be saved truncated.
        """
        device = payload.device.to_device()
        job = Job.create(device.device_id, JobKind.BACKUP)
        services.job_store.save(job)
        outcome = await _run_and_store(job, device)
        return to_response(job, outcome)

    @app.get(
        "/api/devices/{device_name}/backups",
        response_model=list[BackupFileResponse],
    )
    def list_backups(device_name: str) -> list[BackupFileResponse]:
        """Backup files of one device, newest first."""
        return [
            BackupFileResponse(**entry)
            for entry in services.backup_store.list_backups(device_name)
        ]

    @app.get("/api/backups/content", response_model=BackupContentResponse)
    def backup_content(path: str = Query(..., min_length=1)) -> BackupContentResponse:
        try:
            content = services.backup_store.read(path)
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return BackupContentResponse(path=path, content=content)

    @app.delete("/api/backups")
    def delete_backup(path: str = Query(..., min_length=1)) -> dict[str, str]:
        try:
            services.backup_store.delete(path)
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"status": "deleted"}

    @app.post("/api/backups/diff", response_model=BackupDiffResponse)
    def diff_backups(payload: BackupDiffRequest) -> BackupDiffResponse:
        try:
            diff = services.backup_store.diff(payload.old_path, payload.new_path)
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return BackupDiffResponse(
            added=diff.added,
            removed=diff.removed,
            unchanged=diff.unchanged,
            changed=diff.changed,
            patch=diff.patch,
        )

    @app.post("/api/devices/test", response_model=DeviceTestResponse)
    async def test_device(payload: DeviceTestRequest) -> DeviceTestResponse:
        """Check that a device accepts its credentials."""
        device = payload.device.to_device()
        success, error = await asyncio.to_thread(services.probe.probe, device)
        return DeviceTestResponse(success=success, error=error)

    @app.post("/api/scheduler/tasks", response_model=ScheduledTaskResponse)
    async def create_task(payload: ScheduledTaskRequest) -> ScheduledTaskResponse:
        """Register a cron task."""
        try:
            task_id = services.scheduler.create(
                payload.cron_expression,
                [device.to_device() for device in payload.devices],
                payload.kind,
                [command.to_spec() for command in payload.commands],
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        info = services.scheduler.get(task_id)
        if info is None:
            raise HTTPException(status_code=404, detail="Scheduled task not found")
        return _task_response(info, services.scheduler.last_summary(task_id))

    @app.get("/api/scheduler/tasks", response_model=list[ScheduledTaskResponse])
    async def list_tasks() -> list[ScheduledTaskResponse]:
        return [
            _task_response(info, services.scheduler.last_summary(info.task_id))
            for info in services.scheduler.list()
        ]

    @app.delete("/api/scheduler/tasks/{task_id}")
    async def delete_task(task_id: str) -> dict[str, str]:
        try:
            services.scheduler.delete(task_id)
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"status": "deleted"}

    @app.post("/api/scheduler/tasks/{task_id}/run", response_model=BatchSummaryResponse)
    async def run_task(task_id: str) -> BatchSummaryResponse:
        """Run one tick now and return its summary."""
        try:
            summary = await services.scheduler.run_tick(task_id)
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _summary_response(summary)

    @app.post("/api/ping", response_model=list[PingResultResponse])
    async def ping(payload: PingRequest) -> list[PingResultResponse]:
        """Check reachability of many targets by ICMP or TCP connect."""
        options = PingOptions(
            count=payload.options.count,
            timeout_ms=payload.options.timeout,
            packet_size=payload.options.packet_size,
            tcp=payload.options.tcp,
            tcp_port=payload.options.tcp_port,
        )
        results = await services.reachability.check_many(payload.ips, options)
        return [PingResultResponse(**result.to_dict()) for result in results]

    @app.post("/api/ssh/connect", response_model=TerminalConnectResponse)
    async def terminal_connect(payload: TerminalConnectRequest) -> TerminalConnectResponse:
        """Open an interactive shell for a browser terminal."""
        try:
            session = await services.relay.connect(payload.to_credentials())
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except AuthFailure as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        except SessionError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return TerminalConnectResponse(session_id=session.session_id)

    @app.get("/api/ssh/stream/{session_id}")
    async def terminal_stream(session_id: str) -> StreamingResponse:
        """Shell output as chunked text until the device hangs up."""
        try:
            session = services.relay.get(session_id)
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return StreamingResponse(session.stream(), media_type="text/plain; charset=utf-8")

    @app.post("/api/ssh/input/{session_id}")
    async def terminal_input(session_id: str, payload: TerminalInputRequest) -> dict[str, str]:
        try:
            services.relay.send(session_id, payload.command)
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except SessionError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"status": "sent"}

    @app.post("/api/ssh/disconnect")
    async def terminal_disconnect(payload: TerminalDisconnectRequest) -> dict[str, str]:
        await services.relay.disconnect(payload.session_id)
        return {"status": "disconnected"}

    @app.websocket("/ws/progress")
    async def ws_progress(websocket: WebSocket, device_id: Optional[str] = None) -> None:
        """Stream live progress events and batch summaries."""
        await websocket.accept()
        subscription = services.broadcaster.subscribe(device_id=device_id)
        closed: Optional[asyncio.Task[None]] = None
        try:
            closed = asyncio.create_task(_wait_disconnect(websocket))
            while True:
                next_event = asyncio.create_task(subscription.get())
                await asyncio.wait(
                    {next_event, closed}, return_when=asyncio.FIRST_COMPLETED
                )
                if closed.done():
                    next_event.cancel()
                    return
                await websocket.send_json(next_event.result().to_dict())
        except WebSocketDisconnect:
            return
        finally:
            if closed is not None:
                closed.cancel()
            services.broadcaster.unsubscribe(subscription)

    return app


def create_default_app() -> FastAPI:
    settings = load_settings()
    configure_logging(settings)
    return create_app(build_services(settings))


app = create_default_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
