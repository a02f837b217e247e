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
"""Interactive SSH shells over asyncssh."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional, Sequence

import asyncssh
from asyncssh.encryption import get_encryption_algs
from asyncssh.kex import get_kex_algs
from asyncssh.mac import get_mac_algs
from asyncssh.public_key import get_public_key_algs

from netops.app.domain.errors import AuthFailure, ChannelFailure, ConnectFailure
from netops.app.domain.models import Credentials

logger = logging.getLogger(__name__)

# Preference order, newest first. Older network OS builds often only speak
# the tail of each list.
KEX_ALGS = (
    "curve25519-sha256",
    "curve25519-sha256@libssh.org",
    "ecdh-sha2-nistp256",
    "ecdh-sha2-nistp384",
    "ecdh-sha2-nistp521",
    "diffie-hellman-group-exchange-sha256",
    "diffie-hellman-group14-sha256",
    "diffie-hellman-group16-sha512",
    "diffie-hellman-group14-sha1",
    "diffie-hellman-group-exchange-sha1",
    "diffie-hellman-group1-sha1",
)
ENCRYPTION_ALGS = (
    "chacha20-poly1305@openssh.com",
    "aes128-gcm@openssh.com",
    "aes256-gcm@openssh.com",
    "aes128-ctr",
    "aes192-ctr",
    "aes256-ctr",
    "aes128-cbc",
    "aes192-cbc",
    "aes256-cbc",
    "3des-cbc",
)
MAC_ALGS = (
    "hmac-sha2-256-etm@openssh.com",
    "hmac-sha2-512-etm@openssh.com",
    "hmac-sha2-256",
    "hmac-sha2-512",
    "hmac-sha1",
    "hmac-sha1-96",
    "hmac-md5",
)
HOST_KEY_ALGS = (
    "ssh-ed25519",
    "ecdsa-sha2-nistp256",
    "ecdsa-sha2-nistp384",
    "ecdsa-sha2-nistp521",
    "rsa-sha2-512",
    "rsa-sha2-256",
    "ssh-rsa",
    "ssh-dss",
)

KEEPALIVE_INTERVAL = 5
KEEPALIVE_COUNT_MAX = 3
_CLOSE_WAIT = 2.0


def supported(wanted: Sequence[str], available: Iterable[bytes]) -> list[str]:
    """Keep the wanted algorithms this asyncssh build can negotiate."""
    names = {alg.decode("ascii") for alg in available}
    return [alg for alg in wanted if alg in names]


class AsyncSSHShellChannel:
    """A started ``SSHClientProcess`` plus its connection."""

    def __init__(
        self,
        conn: asyncssh.SSHClientConnection,
        process: asyncssh.SSHClientProcess,
        read_size: int = 65536,
    ):
        self._conn = conn
        self._process = process
        self._read_size = read_size
        self._closed = False

    async def read(self) -> str:
        try:
            return await self._process.stdout.read(self._read_size)
        except (asyncssh.Error, OSError) as exc:
            raise ChannelFailure(f"Shell read failed: {exc}") from exc

    def write(self, data: str) -> None:
        try:
            self._process.stdin.write(data)
        except (asyncssh.Error, OSError) as exc:
            raise ChannelFailure(f"Shell write failed: {exc}") from exc

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._process.close()
        self._conn.close()
        try:
            await asyncio.wait_for(self._conn.wait_closed(), _CLOSE_WAIT)
        except (asyncio.TimeoutError, asyncssh.Error, OSError):
            logger.debug("Connection did not close cleanly")


class AsyncSSHShellConnector:
    """Opens password-authenticated interactive shells."""

    def __init__(self, term_type: str = "vt100", term_size: tuple[int, int] = (200, 24)):
        self.term_type = term_type
        self.term_size = term_size
        self.kex_algs = supported(KEX_ALGS, get_kex_algs())
        self.encryption_algs = supported(ENCRYPTION_ALGS, get_encryption_algs())
        self.mac_algs = supported(MAC_ALGS, get_mac_algs())
        self.host_key_algs = supported(HOST_KEY_ALGS, get_public_key_algs())

    async def open(
        self, credentials: Credentials, connect_timeout: float
    ) -> AsyncSSHShellChannel:
        conn: Optional[asyncssh.SSHClientConnection] = None
        try:
            conn = await asyncio.wait_for(
                asyncssh.connect(
                    credentials.host,
                    port=credentials.port,
                    username=credentials.username,
                    password=credentials.password,
                    known_hosts=None,
                    client_keys=None,
                    agent_path=None,
                    preferred_auth="password,keyboard-interactive",
                    kex_algs=self.kex_algs,
                    encryption_algs=self.encryption_algs,
                    mac_algs=self.mac_algs,
                    server_host_key_algs=self.host_key_algs,
                    keepalive_interval=KEEPALIVE_INTERVAL,
                    keepalive_count_max=KEEPALIVE_COUNT_MAX,
                ),
                connect_timeout,
            )
        except asyncssh.PermissionDenied as exc:
            raise AuthFailure(
                f"Authentication failed for {credentials.username}@{credentials.key}"
            ) from exc
        except asyncio.TimeoutError as exc:
            raise ConnectFailure(
                f"Connection to {credentials.key} timed out after {connect_timeout:g}s"
            ) from exc
        except (asyncssh.Error, OSError) as exc:
            raise ConnectFailure(f"Connection to {credentials.key} failed: {exc}") from exc

        try:
            process = await conn.create_process(
                term_type=self.term_type,
                term_size=self.term_size,
                encoding="utf-8",
                errors="replace",
            )
        except (asyncssh.Error, OSError) as exc:
            conn.close()
            raise ChannelFailure(
                f"Could not open a shell on {credentials.key}: {exc}"
            ) from exc
        except BaseException:
            # Cancelled by the job deadline mid-open; the caller never sees conn.
            conn.close()
            raise
        logger.info("Shell open on %s", credentials.key)
        return AsyncSSHShellChannel(conn, process)
