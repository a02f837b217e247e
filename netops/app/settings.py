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
"""Runtime settings for the automation engine, read from NETOPS_* variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class EngineSettings:
    """Tunable engine constants."""

    driver_mode: str = "ssh"
    backup_root: str = "backups"
    connect_timeout: float = 20.0
    job_timeout: float = 120.0
    command_delay: float = 0.1
    grace_period: float = 1.0
    inactivity_timeout: float = 5.0
    device_delay: float = 0.1
    scheduler_timezone: str = "UTC"
    pagination_pattern: Optional[str] = None
    log_level: str = "INFO"


def _env_str(name: str, default: str) -> str:
    return os.getenv(name, "").strip() or default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


def load_settings() -> EngineSettings:
    """Build settings from the environment; blank values keep the defaults."""
    driver_mode = _env_str("NETOPS_DRIVER_MODE", "ssh").lower()
    if driver_mode not in {"ssh", "simulated"}:
        raise ValueError(f"NETOPS_DRIVER_MODE must be ssh or simulated, got {driver_mode!r}")
    return EngineSettings(
        driver_mode=driver_mode,
        backup_root=_env_str("NETOPS_BACKUP_ROOT", "backups"),
        connect_timeout=_env_float("NETOPS_CONNECT_TIMEOUT", 20.0),
        job_timeout=_env_float("NETOPS_JOB_TIMEOUT", 120.0),
        command_delay=_env_float("NETOPS_COMMAND_DELAY", 0.1),
        grace_period=_env_float("NETOPS_GRACE_PERIOD", 1.0),
        inactivity_timeout=_env_float("NETOPS_INACTIVITY_TIMEOUT", 5.0),
        device_delay=_env_float("NETOPS_DEVICE_DELAY", 0.1),
        scheduler_timezone=_env_str("NETOPS_SCHEDULER_TIMEZONE", "UTC"),
        pagination_pattern=os.getenv("NETOPS_PAGINATION_PATTERN", "").strip() or None,
        log_level=_env_str("NETOPS_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(settings: EngineSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
