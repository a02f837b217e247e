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
"""In-memory repository for on-demand jobs and their outcomes."""

from __future__ import annotations

from threading import Lock
from typing import Optional

from netops.app.domain.models import Job, JobOutcome


class InMemoryJobStore:
    """Thread-safe in-memory job repository."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._jobs: dict[str, Job] = {}
        self._outcomes: dict[str, JobOutcome] = {}

    def save(self, job: Job) -> None:
        with self._lock:
            self._jobs[job.job_id] = job

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def list(self) -> list[Job]:
        with self._lock:
            return list(self._jobs.values())

    def save_outcome(self, outcome: JobOutcome) -> None:
        with self._lock:
            self._outcomes[outcome.job_id] = outcome

    def get_outcome(self, job_id: str) -> Optional[JobOutcome]:
        with self._lock:
            return self._outcomes.get(job_id)
