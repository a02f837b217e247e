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
"""Lookup table turning known vendor command output into structured data."""

from __future__ import annotations

import re
from typing import Callable, Optional

from netops.app.domain.models import ParsedResult

Parser = Callable[[str], Optional[ParsedResult]]


def _lines(output: str) -> list[str]:
    return [line.strip() for line in output.split("\n")]


# Huawei / H3C


def parse_vrp_cpu(output: str) -> Optional[ParsedResult]:
    match = re.search(r"CPU Usage\s*:\s*(\d+)%", output, re.IGNORECASE) or re.search(
        r"CPU utilization for five seconds:\s*(\d+)%", output, re.IGNORECASE
    )
    if not match:
        return None
    return ParsedResult(type="cpu", data={"usage": int(match.group(1))}, original=output)


def parse_vrp_memory(output: str) -> Optional[ParsedResult]:
    match = re.search(r"Memory Using Percentage Is:\s*(\d+)%", output, re.IGNORECASE)
    if match:
        return ParsedResult(
            type="memory", data={"usage": int(match.group(1))}, original=output
        )

    # H3C reports the free share instead.
    match = re.search(r"FreeRatio\s+(\d+\.?\d*)%", output, re.IGNORECASE)
    if match:
        used = round(100 - float(match.group(1)))
        return ParsedResult(type="memory", data={"usage": used}, original=output)

    match = re.search(r"Mem:\s+(\d+)\s+(\d+)\s+(\d+)", output)
    if match:
        total, used = int(match.group(1)), int(match.group(2))
        if total > 0:
            return ParsedResult(
                type="memory",
                data={
                    "usage": round(used / total * 100),
                    "totalKB": total,
                    "usedKB": used,
                },
                original=output,
            )
    return None


def _status_rows(output: str, prefix: str) -> list[dict[str, str]]:
    pattern = re.compile(
        rf"^({prefix}\d*)\s+(Normal|Abnormal|Not Present)", re.IGNORECASE
    )
    rows = []
    for line in _lines(output):
        match = pattern.match(line)
        if match:
            rows.append({"id": match.group(1), "status": match.group(2)})
    return rows


def parse_vrp_fan(output: str) -> Optional[ParsedResult]:
    fans = _status_rows(output, "FAN")
    return ParsedResult(type="fan", data={"fans": fans}, original=output) if fans else None


def parse_vrp_power(output: str) -> Optional[ParsedResult]:
    power = _status_rows(output, "POWER")
    if not power:
        return None
    return ParsedResult(type="power", data={"power": power}, original=output)


def parse_vrp_temperature(output: str) -> Optional[ParsedResult]:
    temperatures = []
    for line in _lines(output):
        if "celsius" not in line.lower():
            continue
        parts = line.split()
        lowered = [part.lower() for part in parts]
        if len(parts) < 3 or "celsius" not in lowered:
            continue
        index = lowered.index("celsius")
        if index == 0:
            continue
        temperatures.append(
            {
                "sensor": " ".join(parts[: index - 1]),
                "temperature": f"{parts[index - 1]} C",
                "status": parts[index + 1] if index + 1 < len(parts) else "Normal",
            }
        )
    if not temperatures:
        return None
    return ParsedResult(
        type="temperature", data={"temperatures": temperatures}, original=output
    )


def parse_vrp_version(output: str) -> Optional[ParsedResult]:
    info: dict[str, str] = {}
    for line in _lines(output):
        match = re.search(
            r"VRP\s*\(.*?\)\s*[Ss]oftware,?\s*[Vv]ersion\s+([\d.()\w\s-]+)",
            line,
            re.IGNORECASE,
        )
        if match:
            info["Software Version"] = match.group(1).strip()
        match = re.search(r"Huawei\s+(.+?)\s+[Ss]oftware", line, re.IGNORECASE)
        if match and "Product" not in info:
            info["Product"] = match.group(1).strip()
        if "copyright" in line.lower() and "Copyright" not in info:
            info["Copyright"] = line
        match = re.search(r"uptime\s+is\s+(.+)", line, re.IGNORECASE)
        if match:
            info["Uptime"] = match.group(1).strip()
    return ParsedResult(type="version", data=info, original=output) if info else None


_VRP_INTERFACE_ROW = re.compile(
    r"^([\w/.-]+)\s+(up|down|admin\s*down|\*down)\s+(up|down|\*down)"
    r"(?:\s+([\d.]+(?:/\d+)?))?",
    re.IGNORECASE,
)


def parse_vrp_interfaces(output: str) -> Optional[ParsedResult]:
    interfaces = []
    in_table = False
    for line in _lines(output):
        if ("Interface" in line and "PHY" in line.upper()) or re.fullmatch(r"-+", line):
            in_table = True
            continue
        if not in_table or not line:
            continue
        match = _VRP_INTERFACE_ROW.match(line)
        if match:
            interfaces.append(
                {
                    "name": match.group(1),
                    "status": re.sub(r"\s+", "_", match.group(2).lower()),
                    "protocol": match.group(3).lower(),
                    "ip": match.group(4),
                }
            )
    if not interfaces:
        return None
    return ParsedResult(
        type="interface", data={"interfaces": interfaces}, original=output
    )


# Cisco


def parse_ios_cpu(output: str) -> Optional[ParsedResult]:
    match = re.search(r"CPU utilization for five seconds:\s*(\d+)%", output, re.IGNORECASE)
    if not match:
        return None
    return ParsedResult(type="cpu", data={"usage": int(match.group(1))}, original=output)


def parse_ios_memory(output: str) -> Optional[ParsedResult]:
    for line in _lines(output):
        if not line.lower().startswith("processor"):
            continue
        parts = line.split()
        if len(parts) < 4:
            return None
        try:
            total, used = int(parts[2]), int(parts[3])
        except ValueError:
            return None
        if total <= 0:
            return None
        return ParsedResult(
            type="memory",
            data={
                "usage": round(used / total * 100, 2),
                "totalBytes": total,
                "usedBytes": used,
            },
            original=output,
        )
    return None


def parse_ios_environment(output: str) -> Optional[ParsedResult]:
    fans, power, temperatures = [], [], []
    for line in _lines(output):
        match = re.match(r"^Fan\s+(\d+)\s+is\s+(\w+)", line, re.IGNORECASE)
        if match:
            fans.append({"id": f"Fan {match.group(1)}", "status": match.group(2)})
        match = re.match(r"^POWER SUPPLY\s+(\w+)\s+is\s+(\w+)", line, re.IGNORECASE)
        if match:
            power.append({"id": f"PSU {match.group(1)}", "status": match.group(2)})
        match = re.search(
            r"(.*) Temperature is\s+(\d+\s+degrees\s+\w+),\s*(\w+)", line, re.IGNORECASE
        )
        if match:
            temperatures.append(
                {
                    "id": match.group(1).strip() or "System",
                    "value": match.group(2),
                    "status": match.group(3),
                }
            )

    data = {}
    if fans:
        data["fans"] = fans
    if power:
        data["power"] = power
    if temperatures:
        data["temperatures"] = temperatures
    if not data:
        return None
    kind = "fan" if fans else "power" if power else "temperature"
    return ParsedResult(type=kind, data=data, original=output)


def parse_ios_version(output: str) -> Optional[ParsedResult]:
    info: dict[str, str] = {}
    for line in _lines(output):
        match = re.search(
            r"Cisco\s+IOS\s+Software.*?[Vv]ersion\s+([\d.()\w-]+)", line, re.IGNORECASE
        )
        if match:
            info["IOS Version"] = match.group(1).strip()
        match = re.search(r'System image file is "(.+)"', line, re.IGNORECASE)
        if match:
            info["System Image"] = match.group(1)
        match = re.search(r"uptime is\s+(.+)", line, re.IGNORECASE)
        if match:
            info["Uptime"] = match.group(1).strip()
        match = re.search(r"cisco\s+([\w-]+)\s+\(", line, re.IGNORECASE)
        if match and "Model" not in info:
            info["Model"] = match.group(1)
    return ParsedResult(type="version", data=info, original=output) if info else None


def parse_ios_interfaces(output: str) -> Optional[ParsedResult]:
    interfaces: list[dict[str, Optional[str]]] = []
    for line in _lines(output):
        match = re.match(
            r"^([\w/.-]+)\s+is\s+(up|down|administratively down),\s+line protocol is\s+(up|down)",
            line,
            re.IGNORECASE,
        )
        if match:
            interfaces.append(
                {
                    "name": match.group(1),
                    "status": re.sub(r"\s+", "_", match.group(2).lower()),
                    "protocol": match.group(3).lower(),
                    "ip": None,
                }
            )
            continue
        match = re.search(r"Internet address is\s+([\d.]+/\d+)", line, re.IGNORECASE)
        if match and interfaces:
            interfaces[-1]["ip"] = match.group(1)
    if not interfaces:
        return None
    return ParsedResult(
        type="interface", data={"interfaces": interfaces}, original=output
    )


VRP_PARSERS: dict[str, Parser] = {
    "display cpu-usage": parse_vrp_cpu,
    "display memory": parse_vrp_memory,
    "display fan": parse_vrp_fan,
    "display power": parse_vrp_power,
    "display device temperature": parse_vrp_temperature,
    "display version": parse_vrp_version,
    "display interface brief": parse_vrp_interfaces,
    "display ip interface brief": parse_vrp_interfaces,
}

IOS_PARSERS: dict[str, Parser] = {
    "show processes cpu": parse_ios_cpu,
    "show memory summary": parse_ios_memory,
    "show environment all": parse_ios_environment,
    "show version": parse_ios_version,
    "show ip interface brief": parse_ios_interfaces,
    "show interface": parse_ios_interfaces,
}


class VendorResultParser:
    """Huawei/H3C commands match exactly, Cisco commands by prefix."""

    def lookup(self, vendor: str, command: str) -> Optional[Parser]:
        vendor = vendor.strip().lower()
        command = command.strip()
        if vendor in {"huawei", "h3c"}:
            return VRP_PARSERS.get(command)
        if vendor == "cisco":
            for prefix, parser in IOS_PARSERS.items():
                if command.startswith(prefix):
                    return parser
        return None

    def parse(self, vendor: str, command: str, output: str) -> ParsedResult | str:
        parser = self.lookup(vendor, command)
        if parser is None:
            return output
        return parser(output) or output
