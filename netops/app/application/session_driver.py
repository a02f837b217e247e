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
"""Drive one interactive CLI shell through a fixed command list.

The driver is transport agnostic: a ``ShellConnector`` hands it a
``ShellChannel`` and the driver owns pacing, pagination handling and
teardown. One ``SessionDriver.run`` call is one session; nothing is shared
between runs.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from netops.app.domain.errors import ChannelFailure, SessionError, SessionTimeout
from netops.app.domain.models import Credentials
from netops.app.domain.vendors import VendorProfile

logger = logging.getLogger(__name__)

# Characters kept from the end of the buffer so a pagination marker split
# across two reads is still recognised.
_MARKER_TAIL = 48


class ShellChannel(Protocol):
    """An open interactive shell."""

    async def read(self) -> str:
        """Next chunk of output, or ``""`` once the remote side has closed."""

    def write(self, data: str) -> None:
        """Send keystrokes. Raises ChannelFailure when the channel is gone."""

    async def close(self) -> None:
        """Close the shell and its connection. Safe to call twice."""


class ShellConnector(Protocol):
    """Opens authenticated shells."""

    async def open(self, credentials: Credentials, connect_timeout: float) -> ShellChannel:
        """Connect, authenticate and start a shell, or raise a SessionError."""


@dataclass(frozen=True)
class DriveOptions:
    """Timing for one session run.

    When ``inactivity_timeout`` is set, the run ends after that many quiet
    seconds following the last command instead of after ``grace_period``.
    ``farewell`` is typed just before the channel is closed.
    """

    command_delay: float = 0.1
    grace_period: float = 1.0
    overall_timeout: float = 120.0
    connect_timeout: float = 20.0
    inactivity_timeout: Optional[float] = None
    farewell: Optional[str] = None


async def _wait_event(event: asyncio.Event, timeout: float) -> bool:
    """Wait up to ``timeout`` seconds; True when the event fired."""
    try:
        await asyncio.wait_for(event.wait(), max(timeout, 0))
    except asyncio.TimeoutError:
        return event.is_set()
    return True


class _ShellSession:
    """Buffer and reader state of one run."""

    def __init__(
        self, channel: ShellChannel, profile: VendorProfile, buffer: list[str]
    ) -> None:
        self.channel = channel
        self.profile = profile
        self.buffer = buffer
        self.ready = asyncio.Event()
        self.closed = asyncio.Event()
        self.continuations = 0
        self.error: Optional[SessionError] = None
        self.write_error: Optional[ChannelFailure] = None
        self.last_data_at = asyncio.get_running_loop().time()
        self._tail = ""

    async def pump(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            while True:
                chunk = await self.channel.read()
                if not chunk:
                    break
                self.buffer.append(chunk)
                self.last_data_at = loop.time()
                self.ready.set()
                self._answer_pagination(chunk)
        except SessionError as exc:
            self.error = exc
        finally:
            self.closed.set()
            self.ready.set()

    def _answer_pagination(self, chunk: str) -> None:
        window = self._tail + chunk
        matches = self.profile.find_pagination(window)
        for _ in matches:
            self.continuations += 1
            self.send(self.profile.continuation)
        if matches:
            window = window[matches[-1].end():]
        self._tail = window[-_MARKER_TAIL:]

    def send(self, data: str) -> bool:
        if self.closed.is_set():
            return False
        try:
            self.channel.write(data)
        except ChannelFailure as exc:
            self.write_error = exc
            return False
        return True

    async def settle(self, delay: float) -> None:
        """Sleep ``delay``, again for as long as pagination keeps arriving."""
        while True:
            seen = self.continuations
            if await _wait_event(self.closed, delay):
                return
            if self.continuations == seen:
                return

    async def await_quiet(self, window: float) -> None:
        """Return once no bytes arrived for ``window`` seconds, or on close."""
        loop = asyncio.get_running_loop()
        while not self.closed.is_set():
            remaining = self.last_data_at + window - loop.time()
            if remaining <= 0:
                return
            await _wait_event(self.closed, remaining)


class SessionDriver:
    """Runs a command list over one shell and returns the raw transcript."""

    def __init__(self, connector: ShellConnector) -> None:
        self.connector = connector

    async def run(
        self,
        credentials: Credentials,
        commands: Sequence[str],
        profile: VendorProfile,
        options: DriveOptions,
        on_shell_ready: Optional[Callable[[], None]] = None,
    ) -> str:
        """Drive ``commands`` in order.

        Raises ConnectFailure, AuthFailure, ChannelFailure or SessionTimeout.
        The connection is closed on every exit path.
        """
        buffer: list[str] = []
        try:
            return await asyncio.wait_for(
                self._drive(credentials, tuple(commands), profile, options, buffer, on_shell_ready),
                options.overall_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.info(
                "Session to %s timed out after %ss", credentials.key, options.overall_timeout
            )
            raise SessionTimeout(
                f"Session timed out after {options.overall_timeout:g}s",
                partial_transcript="".join(buffer),
            ) from exc

    async def _drive(
        self,
        credentials: Credentials,
        commands: tuple[str, ...],
        profile: VendorProfile,
        options: DriveOptions,
        buffer: list[str],
        on_shell_ready: Optional[Callable[[], None]],
    ) -> str:
        logger.info("Connecting to %s as %s", credentials.key, credentials.username)
        channel = await self.connector.open(credentials, options.connect_timeout)
        session = _ShellSession(channel, profile, buffer)
        reader = asyncio.create_task(session.pump())
        try:
            # No uniform banner across vendors: any first output means ready.
            await session.ready.wait()
            if session.error is not None:
                raise session.error
            if not buffer:
                raise ChannelFailure("Shell closed before producing any output")
            if on_shell_ready is not None:
                on_shell_ready()

            for command in commands:
                await session.settle(options.command_delay)
                if not session.send(command + "\n"):
                    break

            if options.inactivity_timeout is not None:
                await session.await_quiet(options.inactivity_timeout)
            else:
                await session.settle(options.grace_period)

            if options.farewell and session.send(options.farewell + "\n"):
                await _wait_event(session.closed, options.grace_period)

            if session.error is not None:
                raise session.error
            # A write racing the remote hangup is not a failure.
            if session.write_error is not None and not session.closed.is_set():
                raise session.write_error
        finally:
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
            await channel.close()

        transcript = "".join(buffer)
        logger.info(
            "Session to %s finished: %d chars, %d pagination continuations",
            credentials.key,
            len(transcript),
            session.continuations,
        )
        return transcript
