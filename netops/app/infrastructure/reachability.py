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
"""Batch reachability checks: ICMP through the system ``ping`` or a TCP connect."""

from __future__ import annotations

import asyncio
import logging
import re
import socket
import sys
from dataclasses import asdict, dataclass
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)

# Linux/macOS summary: "rtt min/avg/max/mdev = 0.041/0.052/0.063/0.011 ms"
_UNIX_STATS = re.compile(r"min/avg/max/.*?=\s*([\d.]+)/([\d.]+)/([\d.]+)")
_WINDOWS_STATS = re.compile(
    r"Minimum\s*=\s*(\d+)\s*ms,?\s*Maximum\s*=\s*(\d+)\s*ms,?\s*Average\s*=\s*(\d+)\s*ms",
    re.IGNORECASE,
)
_SINGLE_TIME = re.compile(r"time[=<]\s*([\d.]+)\s*ms", re.IGNORECASE)
_TTL = re.compile(r"ttl=(\d+)", re.IGNORECASE)
_NO_REPLY = re.compile(
    r"100(?:\.0)?% packet loss|Destination Host Unreachable|Request timed out",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class PingOptions:
    count: int = 1
    timeout_ms: int = 2000
    packet_size: int = 56
    tcp: bool = False
    tcp_port: int = 80


@dataclass(frozen=True)
class PingResult:
    ip: str
    host: str = "--"
    status: str = "offline"
    time: Optional[dict[str, float]] = None
    ttl: Optional[int] = None
    error: str = ""
    raw_output: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def parse_ping_output(stdout: str) -> tuple[str, Optional[dict[str, float]], Optional[int]]:
    """Status, round-trip times and TTL from ``ping`` output."""
    ttl_match = _TTL.search(stdout)
    ttl = int(ttl_match.group(1)) if ttl_match else None

    times: Optional[dict[str, float]] = None
    stats = _UNIX_STATS.search(stdout)
    if stats:
        times = {
            "min": float(stats.group(1)),
            "avg": float(stats.group(2)),
            "max": float(stats.group(3)),
        }
    else:
        stats = _WINDOWS_STATS.search(stdout)
        if stats:
            times = {
                "min": float(stats.group(1)),
                "avg": float(stats.group(3)),
                "max": float(stats.group(2)),
            }
        else:
            single = _SINGLE_TIME.search(stdout)
            if single:
                value = float(single.group(1))
                times = {"min": value, "avg": value, "max": value}

    if times is None or _NO_REPLY.search(stdout):
        return "offline", None, ttl
    return "online", times, ttl


def ping_command(ip: str, options: PingOptions) -> list[str]:
    count = str(options.count)
    if sys.platform.startswith("win"):
        size = str(max(1, options.packet_size))
        return ["ping", "-n", count, "-l", size, "-w", str(options.timeout_ms), ip]
    # Linux waits in whole seconds, macOS in milliseconds.
    if sys.platform == "darwin":
        wait = options.timeout_ms
    else:
        wait = max(1, -(-options.timeout_ms // 1000))
    return ["ping", "-c", count, "-s", str(options.packet_size), "-W", str(wait), ip]


async def reverse_lookup(ip: str) -> str:
    try:
        hostname, _, _ = await asyncio.to_thread(socket.gethostbyaddr, ip)
    except (OSError, UnicodeError):
        return "--"
    return hostname or "--"


async def tcp_ping(ip: str, port: int, timeout: float) -> Optional[float]:
    """Connect time in milliseconds, or None when the port does not answer."""
    loop = asyncio.get_running_loop()
    started = loop.time()
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(ip, port), timeout)
    except (asyncio.TimeoutError, OSError):
        return None
    elapsed = round((loop.time() - started) * 1000, 2)
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return elapsed


class ReachabilityChecker:
    """Checks many targets concurrently; one bad target never fails the batch."""

    def __init__(self, resolve_names: bool = True):
        self.resolve_names = resolve_names

    async def _hostname(self, ip: str) -> str:
        return await reverse_lookup(ip) if self.resolve_names else "--"

    async def _check_tcp(self, ip: str, options: PingOptions) -> PingResult:
        elapsed = await tcp_ping(ip, options.tcp_port, options.timeout_ms / 1000)
        if elapsed is None:
            return PingResult(ip=ip, error="Connection timed out")
        return PingResult(
            ip=ip,
            host=await self._hostname(ip),
            status="online",
            time={"min": elapsed, "avg": elapsed, "max": elapsed},
        )

    async def _check_icmp(self, ip: str, options: PingOptions) -> PingResult:
        argv = ping_command(ip, options)
        process = await asyncio.create_subprocess_exec(
            *argv, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
        deadline = options.count * options.timeout_ms / 1000 + 2
        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), deadline)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return PingResult(ip=ip, error="Timeout or host unreachable")
        output = stdout.decode("utf-8", errors="replace")
        if process.returncode and not output.strip():
            return PingResult(ip=ip, error="Timeout or host unreachable")
        status, times, ttl = parse_ping_output(output)
        return PingResult(
            ip=ip,
            host=await self._hostname(ip) if status == "online" else "--",
            status=status,
            time=times,
            ttl=ttl,
            error="" if status == "online" else "No reply",
            raw_output=output,
        )

    async def check(self, ip: str, options: PingOptions) -> PingResult:
        target = ip.strip()
        # Never let a target be read as a ping option.
        if not target or target.startswith("-"):
            return PingResult(ip=ip, host=ip, status="error", error="Invalid address")
        try:
            if options.tcp:
                return await self._check_tcp(target, options)
            return await self._check_icmp(target, options)
        except OSError as exc:
            logger.warning("Reachability check of %s failed: %s", target, exc)
            return PingResult(ip=ip, host=ip, status="error", error=str(exc))

    async def check_many(self, ips: Sequence[str], options: PingOptions) -> list[PingResult]:
        """Results in the order of ``ips``."""
        return list(await asyncio.gather(*(self.check(ip, options) for ip in ips)))
