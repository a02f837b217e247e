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
"""Finite state machine for the per-device job lifecycle."""

from .models import JobEvent, JobState, JobTransition

TERMINAL_STATES = frozenset({JobState.SUCCESS, JobState.FAILED})


class JobStateMachine:
    """Validates and executes job state transitions.

    Created -> Connecting -> Driving -> Segmenting -> Success, with Failed
    reachable from every non-terminal state. Terminal states have no exits.
    """

    _transitions = {
        (JobState.CREATED, JobEvent.CONNECT): JobState.CONNECTING,
        (JobState.CREATED, JobEvent.FAIL): JobState.FAILED,
        (JobState.CONNECTING, JobEvent.SHELL_READY): JobState.DRIVING,
        (JobState.CONNECTING, JobEvent.FAIL): JobState.FAILED,
        (JobState.DRIVING, JobEvent.TRANSCRIPT_READY): JobState.SEGMENTING,
        (JobState.DRIVING, JobEvent.FAIL): JobState.FAILED,
        (JobState.SEGMENTING, JobEvent.SUCCEED): JobState.SUCCESS,
        (JobState.SEGMENTING, JobEvent.FAIL): JobState.FAILED,
    }

    def can_transition(self, state: JobState, event: JobEvent) -> bool:
        """Return True if transition is valid for the current state."""
        return (state, event) in self._transitions

    def transition(self, state: JobState, event: JobEvent) -> JobTransition:
        """Apply a transition or raise ValueError for invalid transitions."""
        key = (state, event)
        if key not in self._transitions:
            raise ValueError(
                f"Invalid transition: state={state.value}, event={event.value}"
            )
        return JobTransition(
            current=state, event=event, next_state=self._transitions[key]
        )

    def is_terminal(self, state: JobState) -> bool:
        return state in TERMINAL_STATES
