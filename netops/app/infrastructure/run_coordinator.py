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
"""Background run coordinator."""

import asyncio
from typing import Any, Coroutine


class RunCoordinator:
    """Runs one background task per job."""

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    def _cleanup_done(self) -> None:
        done = [job_id for job_id, task in self._tasks.items() if task.done()]
        for job_id in done:
            self._tasks.pop(job_id, None)

    def is_running(self, job_id: str) -> bool:
        self._cleanup_done()
        task = self._tasks.get(job_id)
        return bool(task and not task.done())

    def start(self, job_id: str, work: Coroutine[Any, Any, Any]) -> bool:
        """Schedule ``work`` unless the job is already running."""
        self._cleanup_done()
        if job_id in self._tasks:
            work.close()
            return False
        self._tasks[job_id] = asyncio.get_running_loop().create_task(work)
        return True

    async def wait(self, job_id: str) -> None:
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        """Let in-flight jobs finish."""
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
