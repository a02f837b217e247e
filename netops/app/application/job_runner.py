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
"""Per-device job execution: session, segmentation, parsing, bookkeeping."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from netops.app.application.events import EventPublisher, ProgressEvent
from netops.app.application.segmenter import (
    NO_OUTPUT,
    clean_text,
    extract_config_text,
    segment,
)
from netops.app.application.session_driver import DriveOptions, SessionDriver
from netops.app.domain.errors import SessionError, SessionTimeout
from netops.app.domain.models import (
    BackupRecord,
    CommandSpec,
    DeviceProfile,
    HistoryEntry,
    Job,
    JobEvent,
    JobKind,
    JobOutcome,
    JobResult,
    JobState,
    ParsedResult,
    ResultBlock,
    utc_now,
)
from netops.app.domain.state_machine import JobStateMachine
from netops.app.domain.vendors import VendorProfile, get_vendor_profile

logger = logging.getLogger(__name__)

RAW_LOG_CATEGORY = "Raw Log"
RAW_LOG_NAME = "Complete Session Output"
BACKUP_CATEGORY = "Backup"
BACKUP_NAME = "Configuration"


class ResultParser(Protocol):
    """Vendor output parser."""

    def parse(self, vendor: str, command: str, output: str) -> ParsedResult | str:
        """Structured result, or the text unchanged when nothing matches."""


class BackupWriter(Protocol):
    def save(self, device: DeviceProfile, text: str) -> BackupRecord:
        """Persist configuration text and describe the artifact."""


class HistoryRecorder(Protocol):
    def append(self, device_id: str, entry: HistoryEntry) -> None:
        """Record one completed job."""


@dataclass(frozen=True)
class RunnerConfig:
    """Timing and detection settings shared by every job."""

    command_delay: float = 0.1
    grace_period: float = 1.0
    inactivity_timeout: float = 5.0
    job_timeout: float = 120.0
    connect_timeout: float = 20.0
    pagination_pattern: Optional[str] = None


class _StepFailed(Exception):
    def __init__(self, message: str, kind: str):
        super().__init__(message)
        self.kind = kind


class JobRunner:
    """Runs one Job to a terminal state and reports it."""

    def __init__(
        self,
        driver: SessionDriver,
        parser: ResultParser,
        backup_store: BackupWriter,
        history: HistoryRecorder,
        publisher: EventPublisher | None = None,
        config: RunnerConfig | None = None,
        state_machine: JobStateMachine | None = None,
    ):
        self.driver = driver
        self.parser = parser
        self.backup_store = backup_store
        self.history = history
        self.publisher = publisher
        self.config = config or RunnerConfig()
        self.state_machine = state_machine or JobStateMachine()

    def _emit(
        self,
        job: Job,
        progress: int,
        status: str,
        result: Optional[dict[str, Any]] = None,
        message: Optional[str] = None,
    ) -> None:
        if self.publisher is None:
            return
        self.publisher.publish(
            ProgressEvent(
                device_id=job.device_id,
                job_id=job.job_id,
                progress=progress,
                status=status,
                result=result,
                message=message,
            )
        )

    def _advance(self, job: Job, event: JobEvent) -> None:
        transition = self.state_machine.transition(job.state, event)
        logger.info(
            "Job %s: %s -> %s",
            job.job_id,
            transition.current.value,
            transition.next_state.value,
        )
        job.state = transition.next_state

    async def run(self, job: Job, device: DeviceProfile) -> JobOutcome:
        """Drive ``job`` against ``device``; never raises for device problems."""
        job.started_at = utc_now()
        profile = get_vendor_profile(device.vendor, self.config.pagination_pattern)
        target = device.credentials.key if device.credentials else device.name
        self._emit(job, 1, "running", message=f"Attempting to connect to {target}")

        raw_log: Optional[ResultBlock] = None
        try:
            if not device.has_credentials:
                raise _StepFailed("Incomplete device credentials", "invalid")
            if job.kind == JobKind.INSPECTION and not job.commands:
                raise _StepFailed("No inspection commands supplied", "invalid")
            self._advance(job, JobEvent.CONNECT)
            if job.kind == JobKind.BACKUP:
                outcome = await self._backup(job, device, profile)
            else:
                outcome = await self._inspect(job, device, profile)
        except _StepFailed as exc:
            outcome = self._failed(job, str(exc), exc.kind)
        except SessionTimeout as exc:
            if exc.partial_transcript:
                raw_log = _raw_log_block(exc.partial_transcript, profile)
            outcome = self._failed(job, str(exc), exc.kind, raw_log)
        except SessionError as exc:
            outcome = self._failed(job, str(exc), exc.kind)
        except Exception as exc:
            logger.exception("Job %s crashed on %s", job.job_id, device.name)
            outcome = self._failed(job, f"Internal error: {exc}", "internal")

        job.completed_at = utc_now()
        self.history.append(job.device_id, HistoryEntry.from_outcome(outcome))
        if outcome.succeeded:
            self._emit(job, 100, "success", result=result_payload(outcome))
        else:
            self._emit(job, 100, "failed", message=outcome.error)
        return outcome

    def _failed(
        self,
        job: Job,
        error: str,
        kind: str,
        raw_log: Optional[ResultBlock] = None,
    ) -> JobOutcome:
        if not self.state_machine.is_terminal(job.state):
            self._advance(job, JobEvent.FAIL)
        logger.info("Job %s failed (%s): %s", job.job_id, kind, error)
        return JobOutcome(
            job_id=job.job_id,
            device_id=job.device_id,
            kind=job.kind,
            status=JobState.FAILED,
            error=error,
            error_kind=kind,
            raw_log=raw_log,
        )

    def _options(self, **overrides: Any) -> DriveOptions:
        return DriveOptions(
            command_delay=self.config.command_delay,
            grace_period=self.config.grace_period,
            overall_timeout=self.config.job_timeout,
            connect_timeout=self.config.connect_timeout,
            **overrides,
        )

    async def _inspect(
        self, job: Job, device: DeviceProfile, profile: VendorProfile
    ) -> JobOutcome:
        typed = [spec.command for spec in job.commands]
        sequence = profile.inspection_sequence(typed)
        transcript = await self.driver.run(
            device.credentials,
            sequence,
            profile,
            self._options(),
            on_shell_ready=lambda: self._advance(job, JobEvent.SHELL_READY),
        )
        self._advance(job, JobEvent.TRANSCRIPT_READY)

        offset = len(profile.setup_commands)
        outputs = segment(transcript, sequence, profile)[offset : offset + len(typed)]
        result: JobResult = {}
        total = len(job.commands)
        for index, (spec, output) in enumerate(zip(job.commands, outputs), start=1):
            block = self._build_block(device.vendor, spec, output, result)
            result.setdefault(block.category, {})[block.name] = block
            self._emit(
                job,
                min(99, 10 + int(89 * index / total)),
                "running",
                result={block.category: {block.name: block.to_dict()}},
                message=f"Completed {spec.command}",
            )

        self._advance(job, JobEvent.SUCCEED)
        return JobOutcome(
            job_id=job.job_id,
            device_id=job.device_id,
            kind=job.kind,
            status=JobState.SUCCESS,
            result=result,
            raw_log=_raw_log_block(transcript, profile),
        )

    def _build_block(
        self, vendor: str, spec: CommandSpec, output: str, result: JobResult
    ) -> ResultBlock:
        name = _unique_name(result.get(spec.category, {}), spec.display_name)
        parsed: ParsedResult | str = output
        if output != NO_OUTPUT and (spec.parse or "").lower() != "raw":
            try:
                parsed = self.parser.parse(vendor, spec.command, output)
            except Exception as exc:
                logger.warning(
                    "Parser failed for %r on %s: %s", spec.command, vendor, exc
                )
                parsed = output
        if isinstance(parsed, ParsedResult):
            return ResultBlock(
                category=spec.category,
                name=name,
                command=spec.command,
                type=parsed.type,
                data=parsed.data,
                original=parsed.original,
            )
        return ResultBlock(
            category=spec.category,
            name=name,
            command=spec.command,
            type="raw",
            data={"raw": parsed},
            original=output,
        )

    async def _backup(
        self, job: Job, device: DeviceProfile, profile: VendorProfile
    ) -> JobOutcome:
        # Completion is declared by the inactivity window, not a prompt.
        transcript = await self.driver.run(
            device.credentials,
            (profile.config_command,),
            profile,
            self._options(
                inactivity_timeout=self.config.inactivity_timeout,
                farewell=profile.backup_farewell,
            ),
            on_shell_ready=lambda: self._advance(job, JobEvent.SHELL_READY),
        )
        self._advance(job, JobEvent.TRANSCRIPT_READY)

        text = extract_config_text(transcript, profile.config_command, profile)
        try:
            record = await asyncio.to_thread(self.backup_store.save, device, text)
        except OSError as exc:
            raise _StepFailed(f"Failed to write backup: {exc}", "storage") from exc

        block = ResultBlock(
            category=BACKUP_CATEGORY,
            name=BACKUP_NAME,
            command=profile.config_command,
            type="backup",
            data=record.to_dict(),
            original=text,
        )
        self._advance(job, JobEvent.SUCCEED)
        return JobOutcome(
            job_id=job.job_id,
            device_id=job.device_id,
            kind=job.kind,
            status=JobState.SUCCESS,
            result={BACKUP_CATEGORY: {BACKUP_NAME: block}},
            backup=record,
        )


def _unique_name(existing: dict[str, ResultBlock], name: str) -> str:
    if name not in existing:
        return name
    suffix = 2
    while f"{name} ({suffix})" in existing:
        suffix += 1
    return f"{name} ({suffix})"


def _raw_log_block(transcript: str, profile: VendorProfile) -> ResultBlock:
    return ResultBlock(
        category=RAW_LOG_CATEGORY,
        name=RAW_LOG_NAME,
        command="",
        type="raw",
        data={"raw": clean_text(transcript, profile)},
        original=transcript,
    )


def result_payload(outcome: JobOutcome) -> dict[str, Any]:
    """Result as plain dicts, with the raw log merged back in."""
    payload = {
        category: {name: block.to_dict() for name, block in blocks.items()}
        for category, blocks in outcome.result.items()
    }
    if outcome.raw_log is not None:
        payload[outcome.raw_log.category] = {
            outcome.raw_log.name: outcome.raw_log.to_dict()
        }
    return payload

