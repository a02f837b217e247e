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
"""Cron-driven batch scheduler.

Tasks live in process memory only. Each tick walks its devices one at a
time, so a device is finished before the next one is contacted.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence
from uuid import uuid4

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from netops.app.application.events import BatchSummary, DeviceTickResult, EventPublisher
from netops.app.application.job_runner import JobRunner
from netops.app.domain.models import CommandSpec, DeviceProfile, Job, JobKind, utc_now

logger = logging.getLogger(__name__)

SKIP_REASON_CREDENTIALS = "Incomplete device credentials"


class InvalidCronExpression(ValueError):
    """Cron text that cannot be turned into a trigger."""


def build_cron_trigger(expression: str, timezone: str = "UTC") -> CronTrigger:
    """Parse 5-field crontab text, or 6 fields with a leading seconds field."""
    fields = (expression or "").split()
    try:
        if len(fields) == 5:
            return CronTrigger.from_crontab(" ".join(fields), timezone=timezone)
        if len(fields) == 6:
            second, minute, hour, day, month, day_of_week = fields
            return CronTrigger(
                second=second,
                minute=minute,
                hour=hour,
                day=day,
                month=month,
                day_of_week=day_of_week,
                timezone=timezone,
            )
    except (ValueError, TypeError, LookupError) as exc:
        raise InvalidCronExpression(
            f"Invalid cron expression {expression!r}: {exc}"
        ) from exc
    raise InvalidCronExpression(
        f"Invalid cron expression {expression!r}: expected 5 or 6 fields, got {len(fields)}"
    )


@dataclass
class ScheduledTask:
    """One registered cron task."""

    task_id: str
    cron_expression: str
    kind: JobKind
    devices: tuple[DeviceProfile, ...]
    commands: tuple[CommandSpec, ...] = ()
    created_at: str = field(default_factory=utc_now)
    last_run_at: Optional[str] = None
    last_summary: Optional[BatchSummary] = None


@dataclass(frozen=True)
class TaskInfo:
    task_id: str
    cron_expression: str
    kind: str
    device_ids: tuple[str, ...]
    created_at: str
    next_run_time: Optional[str]
    last_run_at: Optional[str]


class BatchScheduler:
    """Owns cron tasks and runs their ticks."""

    def __init__(
        self,
        runner: JobRunner,
        publisher: EventPublisher | None = None,
        device_delay: float = 0.1,
        timezone: str = "UTC",
        scheduler: AsyncIOScheduler | None = None,
    ):
        self.runner = runner
        self.publisher = publisher
        self.device_delay = device_delay
        self.timezone = timezone
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone)
        self._tasks: dict[str, ScheduledTask] = {}

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        """Start firing triggers. Needs a running event loop."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Scheduler started with %d task(s)", len(self._tasks))

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def create(
        self,
        cron_expression: str,
        devices: Sequence[DeviceProfile],
        kind: JobKind | str,
        commands: Sequence[CommandSpec] = (),
    ) -> str:
        """Register a task and return its id; invalid input registers nothing."""
        try:
            job_kind = JobKind(kind)
        except ValueError as exc:
            raise ValueError(f"Unknown job kind: {kind}") from exc
        if not devices:
            raise ValueError("A scheduled task needs at least one device")
        if job_kind == JobKind.INSPECTION and not commands:
            raise ValueError("An inspection task needs at least one command")
        trigger = build_cron_trigger(cron_expression, self.timezone)

        task = ScheduledTask(
            task_id=str(uuid4()),
            cron_expression=cron_expression.strip(),
            kind=job_kind,
            devices=tuple(devices),
            commands=tuple(commands),
        )
        self._scheduler.add_job(
            self.run_tick,
            trigger=trigger,
            args=[task.task_id],
            id=task.task_id,
            name=f"{job_kind.value}:{task.cron_expression}",
            coalesce=True,
            max_instances=1,
        )
        self._tasks[task.task_id] = task
        logger.info(
            "Scheduled %s task %s (%s) for %d device(s)",
            job_kind.value,
            task.task_id,
            task.cron_expression,
            len(task.devices),
        )
        return task.task_id

    def delete(self, task_id: str) -> None:
        """Stop the timer and forget the task. A tick already running finishes."""
        if task_id not in self._tasks:
            raise LookupError("Scheduled task not found")
        try:
            self._scheduler.remove_job(task_id)
        except JobLookupError:
            logger.warning("Timer for task %s was already gone", task_id)
        del self._tasks[task_id]
        logger.info("Deleted scheduled task %s", task_id)

    def get(self, task_id: str) -> Optional[TaskInfo]:
        task = self._tasks.get(task_id)
        if task is None:
            return None
        return self._describe(task)

    def list(self) -> list[TaskInfo]:
        return [self._describe(task) for task in self._tasks.values()]

    def last_summary(self, task_id: str) -> Optional[BatchSummary]:
        task = self._tasks.get(task_id)
        return task.last_summary if task else None

    def _describe(self, task: ScheduledTask) -> TaskInfo:
        job = self._scheduler.get_job(task.task_id)
        # Jobs added before start() have no next_run_time yet.
        next_run: Optional[datetime] = getattr(job, "next_run_time", None) if job else None
        return TaskInfo(
            task_id=task.task_id,
            cron_expression=task.cron_expression,
            kind=task.kind.value,
            device_ids=tuple(device.device_id for device in task.devices),
            created_at=task.created_at,
            next_run_time=next_run.isoformat() if next_run else None,
            last_run_at=task.last_run_at,
        )

    async def run_tick(self, task_id: str) -> BatchSummary:
        """Run every device of the task in order and publish one summary."""
        task = self._tasks.get(task_id)
        if task is None:
            raise LookupError("Scheduled task not found")
        task.last_run_at = utc_now()
        logger.info("Tick for task %s over %d device(s)", task_id, len(task.devices))

        results: list[DeviceTickResult] = []
        attempted = 0
        for device in task.devices:
            if not device.has_credentials:
                logger.info(
                    "Skipping %s in task %s: %s",
                    device.name,
                    task_id,
                    SKIP_REASON_CREDENTIALS,
                )
                results.append(
                    DeviceTickResult(
                        device_id=device.device_id,
                        device_name=device.name,
                        status="skipped",
                        reason=SKIP_REASON_CREDENTIALS,
                    )
                )
                continue

            if attempted and self.device_delay > 0:
                await asyncio.sleep(self.device_delay)
            attempted += 1
            job = Job.create(device.device_id, task.kind, task.commands)
            try:
                outcome = await self.runner.run(job, device)
            except Exception as exc:
                logger.exception("Device %s crashed tick %s", device.name, task_id)
                results.append(
                    DeviceTickResult(
                        device_id=device.device_id,
                        device_name=device.name,
                        status="failed",
                        job_id=job.job_id,
                        error=str(exc),
                    )
                )
                continue
            results.append(
                DeviceTickResult(
                    device_id=device.device_id,
                    device_name=device.name,
                    status=outcome.status.value,
                    job_id=outcome.job_id,
                    error=outcome.error,
                )
            )

        success_count = sum(1 for r in results if r.status == "success")
        summary = BatchSummary(
            task_id=task_id,
            kind=task.kind.value,
            total_devices=len(task.devices),
            attempted=attempted,
            skipped=len(task.devices) - attempted,
            success_count=success_count,
            failure_count=attempted - success_count,
            results=tuple(results),
        )
        task.last_summary = summary
        logger.info(
            "Tick for task %s done: %d ok, %d failed, %d skipped",
            task_id,
            summary.success_count,
            summary.failure_count,
            summary.skipped,
        )
        if self.publisher is not None:
            self.publisher.publish(summary)
        return summary
