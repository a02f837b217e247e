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
"""Unit tests for the vendor result parser table."""

import pytest

from netops.app.domain.models import ParsedResult
from netops.app.infrastructure.vendor_result_parser import VendorResultParser


@pytest.fixture
def parser():
    return VendorResultParser()


def test_huawei_cpu_usage(parser):
    result = parser.parse("huawei", "display cpu-usage", "CPU Usage   : 37%")

    assert result == ParsedResult(
        type="cpu", data={"usage": 37}, original="CPU Usage   : 37%"
    )


@pytest.mark.parametrize(
    ("output", "usage"),
    [
        ("Memory Using Percentage Is: 42%", 42),
        ("Slot 1:\n  FreeRatio   63.5%", 36),
        ("             total     used     free\nMem:         1000      250      750", 25),
    ],
)
def test_vrp_memory_formats(parser, output, usage):
    result = parser.parse("h3c", "display memory", output)

    assert isinstance(result, ParsedResult)
    assert result.type == "memory"
    assert result.data["usage"] == usage


def test_vrp_fan_and_power_rows(parser):
    fans = parser.parse("huawei", "display fan", "FAN1  Normal\nFAN2  Abnormal")
    power = parser.parse("huawei", "display power", "POWER1 Normal\nPOWER2 Not Present")

    assert fans.data == {
        "fans": [{"id": "FAN1", "status": "Normal"}, {"id": "FAN2", "status": "Abnormal"}]
    }
    assert power.data["power"][1] == {"id": "POWER2", "status": "Not Present"}


def test_vrp_temperature(parser):
    output = "Slot  Sensor  45  Celsius  Normal"

    result = parser.parse("huawei", "display device temperature", output)

    assert result.type == "temperature"
    assert result.data["temperatures"] == [
        {"sensor": "Slot Sensor", "temperature": "45 C", "status": "Normal"}
    ]


def test_vrp_version(parser):
    output = (
        "Huawei Versatile Routing Platform Software\n"
        "VRP (R) software, Version 5.170 (S5720 V200R010C00SPC600)\n"
        "HUAWEI S5720 uptime is 12 days, 3 hours"
    )

    result = parser.parse("huawei", "display version", output)

    assert result.data["Product"] == "Versatile Routing Platform"
    assert result.data["Software Version"].startswith("5.170")
    assert result.data["Uptime"] == "12 days, 3 hours"


def test_vrp_interface_brief(parser):
    output = (
        "Interface                   PHY   Protocol InUti OutUti\n"
        "GigabitEthernet0/0/1        up    up       0.01%  0.01%\n"
        "GigabitEthernet0/0/2        down  down        0%     0%"
    )

    result = parser.parse("huawei", "display interface brief", output)

    assert [i["name"] for i in result.data["interfaces"]] == [
        "GigabitEthernet0/0/1",
        "GigabitEthernet0/0/2",
    ]
    assert result.data["interfaces"][1]["status"] == "down"


def test_cisco_prefix_match(parser):
    output = "CPU utilization for five seconds: 12%/0%; one minute: 10%"

    result = parser.parse("cisco", "show processes cpu sorted", output)

    assert result.type == "cpu"
    assert result.data == {"usage": 12}


def test_cisco_memory_summary(parser):
    output = "                Head    Total(b)     Used(b)\nProcessor  6A1B2C   1000000      250000"

    result = parser.parse("cisco", "show memory summary", output)

    assert result.data == {"usage": 25.0, "totalBytes": 1000000, "usedBytes": 250000}


def test_cisco_environment_prefers_fans(parser):
    output = "Fan 1 is OK\nPOWER SUPPLY A is OK\nInlet Temperature is 25 degrees C, Normal"

    result = parser.parse("cisco", "show environment all", output)

    assert result.type == "fan"
    assert result.data["power"] == [{"id": "PSU A", "status": "OK"}]
    assert result.data["temperatures"][0]["id"] == "Inlet"


def test_cisco_interfaces_pick_up_addresses(parser):
    output = (
        "GigabitEthernet0/0 is up, line protocol is up\n"
        "  Internet address is 10.0.0.1/24\n"
        "GigabitEthernet0/1 is administratively down, line protocol is down"
    )

    result = parser.parse("cisco", "show interface", output)

    assert result.data["interfaces"][0]["ip"] == "10.0.0.1/24"
    assert result.data["interfaces"][1]["status"] == "administratively_down"


def test_unmatched_output_comes_back_raw(parser):
    assert parser.parse("huawei", "display cpu-usage", "no numbers here") == "no numbers here"
    assert parser.parse("huawei", "display clock", "12:00") == "12:00"
    assert parser.parse("ruijie", "show version", "RGOS") == "RGOS"
