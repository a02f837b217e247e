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
"""Split one raw shell transcript into per-command output blocks.

Everything here is pure: the same transcript and command list always give
the same blocks, and no input makes these functions raise.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional, Sequence

from netops.app.domain.vendors import VendorProfile

NO_OUTPUT = "No output returned."

# Lines scanned past the cursor when a command echo cannot be found.
FALLBACK_SCAN_LINES = 50

# Minimum size of an extracted configuration before it is trusted.
MIN_CONFIG_CHARS = 100

# Cursor-left redraws emitted after a pagination prompt is dismissed.
_ERASE_RESIDUE = (
    r"(?:\x1b?\[\d+D[ \t]*\x1b?\[\d+D|\x08+[ \t]*\x08+|\x1b?\[\d+D|\x08+)*"
)
_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]|\x1b[()][A-Za-z0-9]|\x1b[=>]")
_BARE_CURSOR_LEFT = re.compile(r"\[\d+D")
_BACKSPACE_ERASE = re.compile(r"[^\x08\n]\x08")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
_CONFIG_STOP_WORDS = ("quit", "return")


@lru_cache(maxsize=32)
def _pagination_with_residue(pattern: re.Pattern[str]) -> re.Pattern[str]:
    return re.compile(rf"[ \t]*(?:{pattern.pattern}){_ERASE_RESIDUE}", pattern.flags)


def clean_text(text: Optional[str], profile: VendorProfile) -> str:
    """Drop pagination markers, terminal escapes and carriage returns."""
    if not text:
        return ""
    cleaned = _pagination_with_residue(profile.pagination_pattern).sub("", text)
    cleaned = _ANSI_ESCAPE.sub("", cleaned)
    cleaned = _BARE_CURSOR_LEFT.sub("", cleaned)
    cleaned = cleaned.replace("\r\n", "\n").replace("\r", "")
    previous = None
    while previous != cleaned:
        previous = cleaned
        cleaned = _BACKSPACE_ERASE.sub("", cleaned)
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    return "\n".join(line.rstrip() for line in cleaned.split("\n"))


def _is_echo(line: str, command: str, profile: VendorProfile) -> bool:
    stripped = line.strip()
    return stripped == command or profile.echoed_command(stripped) == command


def _is_boundary(line: str, known: frozenset[str], profile: VendorProfile) -> bool:
    if profile.is_prompt_line(line):
        return True
    echoed = profile.echoed_command(line)
    return echoed is not None and echoed in known


def _join(lines: Sequence[str]) -> str:
    text = "\n".join(line for line in lines if line.strip())
    return text or NO_OUTPUT


def segment(
    transcript: Optional[str],
    commands: Sequence[str],
    profile: VendorProfile,
) -> list[str]:
    """Return one cleaned block per command, in the order given.

    A block runs from the command echo to the next prompt line (a bare
    prompt, or a prompt followed by another command of this run) or to the
    end of the transcript. When an echo is missing, a bounded scan from the
    cursor stands in for it. Empty blocks become ``NO_OUTPUT``.
    """
    lines = clean_text(transcript, profile).split("\n")
    wanted = [command.strip() for command in commands]
    known = frozenset(command for command in wanted if command)
    cursor = 0
    blocks: list[str] = []

    for command in wanted:
        echo_at = None
        if command:
            for index in range(cursor, len(lines)):
                if _is_echo(lines[index], command, profile):
                    echo_at = index
                    break

        if echo_at is not None:
            start = echo_at + 1
            stop = start
            while stop < len(lines) and not _is_boundary(lines[stop], known, profile):
                stop += 1
        else:
            start = cursor
            limit = min(len(lines), cursor + FALLBACK_SCAN_LINES)
            while start < limit and _is_boundary(lines[start], known, profile):
                start += 1
            stop = start
            while stop < limit and not _is_boundary(lines[stop], known, profile):
                stop += 1

        blocks.append(_join(lines[start:stop]))
        cursor = stop

    return blocks


def extract_config_text(
    transcript: Optional[str], command: str, profile: VendorProfile
) -> str:
    """Pull the configuration body that follows ``command`` out of a backup run.

    Stops at the first prompt line, ``quit``/``return`` line, ``Error:`` or
    ``%`` line. Falls back to the whole cleaned transcript when the
    extraction is implausibly short.
    """
    cleaned = clean_text(transcript, profile)
    lines = [line for line in cleaned.split("\n") if line.strip()]
    command = command.strip()

    start = None
    for index, line in enumerate(lines):
        if command and command in line:
            start = index + 1
            break
    if start is None:
        return cleaned.strip()

    stop = len(lines)
    for index in range(start, len(lines)):
        line = lines[index].strip()
        if (
            profile.is_boundary_line(line)
            or line in _CONFIG_STOP_WORDS
            or line.startswith("Error:")
            or line.startswith("%")
        ):
            stop = index
            break

    config = "\n".join(lines[start:stop]).strip()
    if len(config) < MIN_CONFIG_CHARS:
        return cleaned.strip()
    return config
