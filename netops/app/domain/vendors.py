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
"""Per-vendor CLI detection strategies.

Prompt and pagination detection is heuristic and differs per network OS.
Each vendor gets one ``VendorProfile`` consumed by the session driver and
the output segmenter, so a new vendor is a new profile and nothing else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from functools import cached_property
from typing import Iterable, Optional

# "---- More ----", "-- More --", "--More--", "---More---", "--More-- lines 1-24"
DEFAULT_PAGINATION_PATTERN = re.compile(
    r"-{2,4}[ \t]*More[ \t]*-{2,4}(?:[ \t]*lines?[ \t]*\d+(?:-\d+)?)?",
    re.IGNORECASE,
)

# <HUAWEI>, [~HUAWEI], [H3C-ui-vty0-4]
VRP_PROMPT_TOKEN = r"<[^<>\s][^<>]*>|\[[^\[\]\s][^\[\]]*\]"

# Router#, Switch>, Router(config-if)#
IOS_PROMPT_TOKEN = r"[\w.\-@/:]+(?:\([\w.\-/: ]+\))?[#>]"

GENERIC_PROMPT_TOKEN = f"{VRP_PROMPT_TOKEN}|{IOS_PROMPT_TOKEN}"


@dataclass(frozen=True)
class VendorProfile:
    """Prompt, pagination and session conventions of one vendor CLI."""

    name: str
    netmiko_device_type: str
    config_command: str
    prompt_token: str
    pagination_pattern: re.Pattern[str] = DEFAULT_PAGINATION_PATTERN
    continuation: str = " "
    setup_commands: tuple[str, ...] = ()
    cleanup_commands: tuple[str, ...] = ()
    exit_commands: tuple[str, ...] = ("exit", "exit")
    backup_farewell: str = "quit"

    @cached_property
    def _prompt_only(self) -> re.Pattern[str]:
        return re.compile(f"^(?:{self.prompt_token})$")

    @cached_property
    def _prompt_prefixed(self) -> re.Pattern[str]:
        return re.compile(f"^(?:{self.prompt_token})[ \t]*(?P<rest>\\S.*)$")

    def is_prompt_line(self, line: str) -> bool:
        """True when the line holds nothing but a prompt token."""
        return bool(self._prompt_only.match(line.strip()))

    def echoed_command(self, line: str) -> Optional[str]:
        """Text typed after a prompt on this line, if the line starts with one."""
        match = self._prompt_prefixed.match(line.strip())
        if match is None:
            return None
        return match.group("rest").strip()

    def is_boundary_line(self, line: str) -> bool:
        """A prompt line, bare or followed by the echo of the next command."""
        return self.is_prompt_line(line) or self.echoed_command(line) is not None

    def find_pagination(self, text: str) -> list[re.Match[str]]:
        return list(self.pagination_pattern.finditer(text))

    def inspection_sequence(self, commands: Iterable[str]) -> tuple[str, ...]:
        """Full keystroke plan: paging off, commands, paging restored, logout."""
        return (
            *self.setup_commands,
            *commands,
            *self.cleanup_commands,
            *self.exit_commands,
        )

    def with_pagination_pattern(self, pattern: Optional[str]) -> "VendorProfile":
        if not pattern:
            return self
        return replace(self, pagination_pattern=re.compile(pattern, re.IGNORECASE))


_VRP_SETUP = ("system-view", "user-interface vty 0 4", "screen-length 0", "quit")
_VRP_CLEANUP = ("user-interface vty 0 4", "undo screen-length", "quit")

HUAWEI = VendorProfile(
    name="huawei",
    netmiko_device_type="huawei",
    config_command="display current-configuration",
    prompt_token=VRP_PROMPT_TOKEN,
    setup_commands=_VRP_SETUP,
    cleanup_commands=_VRP_CLEANUP,
)

H3C = VendorProfile(
    name="h3c",
    netmiko_device_type="hp_comware",
    config_command="display current-configuration",
    prompt_token=VRP_PROMPT_TOKEN,
    setup_commands=_VRP_SETUP,
    cleanup_commands=_VRP_CLEANUP,
)

CISCO = VendorProfile(
    name="cisco",
    netmiko_device_type="cisco_ios",
    config_command="show running-config",
    prompt_token=IOS_PROMPT_TOKEN,
    setup_commands=("terminal length 0",),
    cleanup_commands=("terminal length 40",),
    backup_farewell="exit",
)

RUIJIE = VendorProfile(
    name="ruijie",
    netmiko_device_type="ruijie_os",
    config_command="show running-config",
    prompt_token=IOS_PROMPT_TOKEN,
    setup_commands=("terminal length 0",),
    cleanup_commands=("terminal length 40",),
    backup_farewell="exit",
)

GENERIC = VendorProfile(
    name="generic",
    netmiko_device_type="generic",
    config_command="show running-config",
    prompt_token=GENERIC_PROMPT_TOKEN,
    backup_farewell="exit",
)

VENDOR_PROFILES: dict[str, VendorProfile] = {
    profile.name: profile for profile in (HUAWEI, H3C, CISCO, RUIJIE)
}


def get_vendor_profile(
    vendor: str, pagination_pattern: Optional[str] = None
) -> VendorProfile:
    """Resolve a vendor tag to its profile, falling back to the generic one."""
    profile = VENDOR_PROFILES.get(vendor.strip().lower(), GENERIC)
    return profile.with_pagination_pattern(pagination_pattern)
