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
"""Plain-file configuration backups, one directory per device."""

from __future__ import annotations

import difflib
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from uuid import uuid4

from netops.app.domain.models import BackupRecord, DeviceProfile

logger = logging.getLogger(__name__)

# Filenames embed the device name and local time; other tools rely on it.
FILENAME_TIME_FORMAT = "%Y-%m-%d_%H-%M-%S"
BACKUP_SUFFIX = ".cfg"

_UNSAFE_NAME = re.compile(r"[^\w.\-]+")


def safe_device_name(name: str) -> str:
    cleaned = _UNSAFE_NAME.sub("_", name.strip()).strip("._")
    return cleaned or "device"


def create_unified_diff(
    old: str, new: str, from_label: str = "old", to_label: str = "new"
) -> str:
    """Unified diff between two configuration texts."""
    old_lines = old.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)
    diff = difflib.unified_diff(
        old_lines, new_lines, fromfile=from_label, tofile=to_label, lineterm="\n"
    )
    return "".join(diff)


@dataclass(frozen=True)
class BackupDiff:
    added: int
    removed: int
    unchanged: int
    patch: str

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class FileBackupStore:
    """Writes and reads backups under ``root``; refuses paths outside it."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _device_dir(self, device_name: str) -> Path:
        return self.root / safe_device_name(device_name)

    def _checked(self, path: str | Path) -> Path:
        resolved = Path(path).resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise ValueError("Backup path is outside the backup directory")
        return resolved

    def save(
        self, device: DeviceProfile, text: str, now: Optional[datetime] = None
    ) -> BackupRecord:
        """Write ``text`` and describe the file. ``size`` is the text length."""
        moment = now or datetime.now()
        name = safe_device_name(device.name)
        directory = self._device_dir(device.name)
        directory.mkdir(parents=True, exist_ok=True)
        filename = f"{name}_{moment.strftime(FILENAME_TIME_FORMAT)}{BACKUP_SUFFIX}"
        path = directory / filename
        path.write_text(text, encoding="utf-8")
        logger.info("Saved backup %s (%d chars)", path, len(text))
        return BackupRecord(
            id=str(uuid4()),
            device_id=device.device_id,
            device_name=device.name,
            filename=filename,
            path=str(path),
            timestamp=datetime.now(timezone.utc).isoformat(),
            size=len(text),
        )

    def list_backups(self, device_name: str) -> list[dict[str, object]]:
        """Backups of one device, newest first."""
        directory = self._device_dir(device_name)
        if not directory.is_dir():
            return []
        entries = []
        for path in directory.glob(f"*{BACKUP_SUFFIX}"):
            stat = path.stat()
            entries.append(
                {
                    "filename": path.name,
                    "path": str(path),
                    "size": stat.st_size,
                    "modified": datetime.fromtimestamp(
                        stat.st_mtime, timezone.utc
                    ).isoformat(),
                }
            )
        # Names sort by their embedded timestamp.
        entries.sort(key=lambda entry: str(entry["filename"]), reverse=True)
        return entries

    def read(self, path: str | Path) -> str:
        resolved = self._checked(path)
        if not resolved.is_file():
            raise LookupError("Backup file not found")
        return resolved.read_text(encoding="utf-8")

    def delete(self, path: str | Path) -> None:
        resolved = self._checked(path)
        if not resolved.is_file():
            raise LookupError("Backup file not found")
        resolved.unlink()
        logger.info("Deleted backup %s", resolved)

    def diff(self, old_path: str | Path, new_path: str | Path) -> BackupDiff:
        old_text = self.read(old_path)
        new_text = self.read(new_path)
        added = removed = unchanged = 0
        matcher = difflib.SequenceMatcher(
            a=old_text.splitlines(), b=new_text.splitlines(), autojunk=False
        )
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == "equal":
                unchanged += i2 - i1
            else:
                removed += i2 - i1
                added += j2 - j1
        return BackupDiff(
            added=added,
            removed=removed,
            unchanged=unchanged,
            patch=create_unified_diff(
                old_text, new_text, Path(old_path).name, Path(new_path).name
            ),
        )
