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
"""Interactive terminal sessions relayed to HTTP clients.

A session is one shell opened through the same ``ShellConnector`` the
session driver uses. Output is kept in a bounded backlog so a stream that
attaches late still sees the banner, then follows live output until the
device hangs up.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import AsyncIterator, Optional
from uuid import uuid4

from netops.app.application.session_driver import ShellChannel, ShellConnector
from netops.app.domain.errors import ChannelFailure
from netops.app.domain.models import Credentials, utc_now

logger = logging.getLogger(__name__)

BACKLOG_CHARS = 256 * 1024


class TerminalSession:
    """One open shell with a bounded output backlog and live listeners."""

    def __init__(
        self,
        session_id: str,
        credentials: Credentials,
        channel: ShellChannel,
        backlog_chars: int = BACKLOG_CHARS,
    ):
        self.session_id = session_id
        self.target = credentials.key
        self.created_at = utc_now()
        self.channel = channel
        self.closed = asyncio.Event()
        self.backlog_chars = backlog_chars
        self._backlog: deque[str] = deque()
        self._backlog_size = 0
        self._listeners: set[asyncio.Queue[Optional[str]]] = set()
        self._reader: Optional[asyncio.Task[None]] = None

    def start(self) -> None:
        self._reader = asyncio.get_running_loop().create_task(self._pump())

    def _record(self, chunk: str) -> None:
        self._backlog.append(chunk)
        self._backlog_size += len(chunk)
        while self._backlog_size > self.backlog_chars and len(self._backlog) > 1:
            self._backlog_size -= len(self._backlog.popleft())
        for queue in self._listeners:
            queue.put_nowait(chunk)

    async def _pump(self) -> None:
        try:
            while True:
                chunk = await self.channel.read()
                if not chunk:
                    break
                self._record(chunk)
        except ChannelFailure as exc:
            logger.info("Terminal %s lost its channel: %s", self.session_id, exc)
        finally:
            self.closed.set()
            for queue in self._listeners:
                queue.put_nowait(None)
            logger.info("Terminal %s to %s closed", self.session_id, self.target)

    def write(self, data: str) -> None:
        if self.closed.is_set():
            raise ChannelFailure("Terminal session is closed")
        self.channel.write(data)

    async def stream(self) -> AsyncIterator[str]:
        """Backlog first, then live output until the shell closes."""
        queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._listeners.add(queue)
        try:
            for chunk in list(self._backlog):
                yield chunk
            if self.closed.is_set():
                return
            while True:
                chunk = await queue.get()
                if chunk is None:
                    return
                yield chunk
        finally:
            self._listeners.discard(queue)

    async def close(self) -> None:
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
        await self.channel.close()


class TerminalRelay:
    """Registry of interactive sessions, keyed by session id."""

    def __init__(self, connector: ShellConnector, connect_timeout: float = 20.0):
        self.connector = connector
        self.connect_timeout = connect_timeout
        self._sessions: dict[str, TerminalSession] = {}

    async def connect(self, credentials: Credentials) -> TerminalSession:
        """Open a shell. Raises ValueError or the connector's SessionError."""
        if not credentials.is_complete:
            raise ValueError("Missing or invalid connection parameters")
        channel = await self.connector.open(credentials, self.connect_timeout)
        session = TerminalSession(str(uuid4()), credentials, channel)
        self._sessions[session.session_id] = session
        session.start()
        logger.info("Terminal %s open on %s", session.session_id, credentials.key)
        return session

    def get(self, session_id: str) -> TerminalSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise LookupError("Session not found")
        return session

    def list(self) -> list[TerminalSession]:
        return list(self._sessions.values())

    def send(self, session_id: str, data: str) -> None:
        self.get(session_id).write(data)

    async def disconnect(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        return True

    async def shutdown(self) -> None:
        for session_id in list(self._sessions):
            await self.disconnect(session_id)
