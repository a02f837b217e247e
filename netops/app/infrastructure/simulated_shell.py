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
"""Simulated VRP-style shell for demos and tests without real devices."""

from __future__ import annotations

import asyncio
from typing import Mapping, Optional

from netops.app.domain.errors import AuthFailure, ChannelFailure
from netops.app.domain.models import Credentials

PAGINATION_MARKER = "  ---- More ----"
PAGINATION_ERASE = "\x1b[42D" + " " * 42 + "\x1b[42D"

SIMULATED_CONFIG = """!Software Version V200R010C00SPC600
#
sysname {hostname}
#
vlan batch 10 20 30
#
aaa
 local-user admin password irreversible-cipher ******
 local-user admin privilege level 15
 local-user admin service-type ssh
#
interface Vlanif10
 ip address 192.168.10.1 255.255.255.0
#
interface Vlanif20
 ip address 192.168.20.1 255.255.255.0
#
interface GigabitEthernet0/0/1
 port link-type trunk
 port trunk allow-pass vlan 10 20 30
#
interface GigabitEthernet0/0/2
 port link-type access
 port default vlan 10
#
interface GigabitEthernet0/0/3
 port link-type access
 port default vlan 20
#
ip route-static 0.0.0.0 0.0.0.0 192.168.10.254
#
stelnet server enable
ssh user admin authentication-type password
ssh user admin service-type stelnet
#
user-interface vty 0 4
 authentication-mode aaa
 protocol inbound ssh
#
return"""

SIMULATED_OUTPUTS: dict[str, str] = {
    "display cpu-usage": (
        "CPU Usage Stat. Cycle: 60 (Second)\n"
        "CPU Usage            : 37% Max: 81%\n"
        "CPU Usage Stat. Time : 2026-01-01  12:00:00"
    ),
    "display memory": (
        "System Total Memory Is: 536870912 bytes\n"
        "Total Memory Used Is: 187904819 bytes\n"
        "Memory Using Percentage Is: 35%"
    ),
    "display version": (
        "Huawei Versatile Routing Platform Software\n"
        "VRP (R) software, Version 5.170 (S5720 V200R010C00SPC600)\n"
        "HUAWEI S5720-28X-SI-AC Routing Switch uptime is 12 days, 3 hours, 4 minutes"
    ),
    "display fan": (
        "FanID   Status      Speed\n"
        "FAN1    Normal      45%\n"
        "FAN2    Normal      45%"
    ),
    "display power": (
        "PowerID  Status    Mode\n"
        "POWER1   Normal    AC\n"
        "POWER2   Not Present"
    ),
}


class SimulatedShellChannel:
    """Answers a small VRP command set with canned output."""

    def __init__(
        self,
        hostname: str,
        outputs: Mapping[str, str],
        page_lines: int = 24,
        latency: float = 0.0,
    ):
        self.hostname = hostname
        self.outputs = dict(outputs)
        self.page_lines = page_lines
        self.latency = latency
        self.received: list[str] = []
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._pending = ""
        self._view = "user"
        self._paging = True
        self._held: list[str] = []
        self._closed = False
        self._queue.put_nowait(
            "\r\nInfo: The max number of VTY users is 5.\r\n\r\n" + self._prompt()
        )

    def _prompt(self) -> str:
        if self._view == "system":
            return f"[{self.hostname}]"
        if self._view == "vty":
            return f"[{self.hostname}-ui-vty0-4]"
        return f"<{self.hostname}>"

    async def read(self) -> str:
        if self._closed and self._queue.empty():
            return ""
        chunk = await self._queue.get()
        if chunk and self.latency > 0:
            await asyncio.sleep(self.latency)
        return chunk

    def write(self, data: str) -> None:
        if self._closed:
            raise ChannelFailure("Simulated shell is closed")
        self.received.append(data)
        if self._held and data == " ":
            self._queue.put_nowait(PAGINATION_ERASE)
            self._send_page()
            return
        self._pending += data.replace("\r", "\n")
        while "\n" in self._pending:
            line, self._pending = self._pending.split("\n", 1)
            if line.strip():
                self._handle(line.strip())

    async def close(self) -> None:
        self._hangup()

    def _hangup(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait("")

    def _send_page(self) -> None:
        page, self._held = self._held[: self.page_lines], self._held[self.page_lines :]
        text = "\r\n".join(page) + "\r\n"
        if self._held:
            self._queue.put_nowait(text + PAGINATION_MARKER)
        else:
            self._queue.put_nowait(text + self._prompt())

    def _respond(self, output: str) -> None:
        lines = output.split("\n")
        if self._paging and len(lines) > self.page_lines:
            self._held = lines
            self._send_page()
            return
        self._queue.put_nowait(output.replace("\n", "\r\n") + "\r\n" + self._prompt())

    def _handle(self, command: str) -> None:
        self._queue.put_nowait(command + "\r\n")
        if command in {"quit", "exit"}:
            if self._view == "user":
                self._hangup()
                return
            self._view = "system" if self._view == "vty" else "user"
        elif command == "system-view":
            self._view = "system"
            self._queue.put_nowait("Enter system view, return user view with return command.\r\n")
        elif command == "user-interface vty 0 4" and self._view == "system":
            self._view = "vty"
        elif command == "screen-length 0" and self._view == "vty":
            self._paging = False
        elif command == "undo screen-length" and self._view == "vty":
            self._paging = True
        elif command == "display current-configuration":
            self._respond(SIMULATED_CONFIG.format(hostname=self.hostname))
            return
        elif command in self.outputs:
            self._respond(self.outputs[command])
            return
        else:
            self._queue.put_nowait(
                "              ^\r\nError: Unrecognized command found at '^' position.\r\n"
            )
        self._queue.put_nowait(self._prompt())


class SimulatedShellConnector:
    """Hands out simulated shells; any non-empty credentials log in."""

    def __init__(
        self,
        outputs: Optional[Mapping[str, str]] = None,
        page_lines: int = 24,
        latency: float = 0.0,
        reject_password: Optional[str] = None,
    ):
        self.outputs = {**SIMULATED_OUTPUTS, **(outputs or {})}
        self.page_lines = page_lines
        self.latency = latency
        self.reject_password = reject_password
        self.opened: list[SimulatedShellChannel] = []

    async def open(
        self, credentials: Credentials, connect_timeout: float
    ) -> SimulatedShellChannel:
        if self.reject_password is not None and credentials.password == self.reject_password:
            raise AuthFailure(
                f"Authentication failed for {credentials.username}@{credentials.key}"
            )
        channel = SimulatedShellChannel(
            hostname=credentials.host.replace(".", "-"),
            outputs=self.outputs,
            page_lines=self.page_lines,
            latency=self.latency,
        )
        self.opened.append(channel)
        return channel
