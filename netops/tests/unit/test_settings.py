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
"""Unit tests for environment-driven settings."""

import pytest

from netops.app.settings import EngineSettings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "NETOPS_DRIVER_MODE",
        "NETOPS_BACKUP_ROOT",
        "NETOPS_JOB_TIMEOUT",
        "NETOPS_INACTIVITY_TIMEOUT",
        "NETOPS_PAGINATION_PATTERN",
        "NETOPS_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    assert load_settings() == EngineSettings()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("NETOPS_DRIVER_MODE", "Simulated")
    monkeypatch.setenv("NETOPS_BACKUP_ROOT", "/var/backups")
    monkeypatch.setenv("NETOPS_JOB_TIMEOUT", "300")
    monkeypatch.setenv("NETOPS_PAGINATION_PATTERN", r"<--- More --->")
    monkeypatch.setenv("NETOPS_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.driver_mode == "simulated"
    assert settings.backup_root == "/var/backups"
    assert settings.job_timeout == 300.0
    assert settings.pagination_pattern == "<--- More --->"
    assert settings.log_level == "DEBUG"


def test_blank_values_keep_defaults(monkeypatch):
    monkeypatch.setenv("NETOPS_JOB_TIMEOUT", "  ")
    monkeypatch.setenv("NETOPS_PAGINATION_PATTERN", "")

    settings = load_settings()

    assert settings.job_timeout == 120.0
    assert settings.pagination_pattern is None


@pytest.mark.parametrize("value", ["soon", "-1"])
def test_bad_numbers_are_rejected(monkeypatch, value):
    monkeypatch.setenv("NETOPS_INACTIVITY_TIMEOUT", value)

    with pytest.raises(ValueError, match="NETOPS_INACTIVITY_TIMEOUT"):
        load_settings()


def test_unknown_driver_mode_is_rejected(monkeypatch):
    monkeypatch.setenv("NETOPS_DRIVER_MODE", "telnet")

    with pytest.raises(ValueError):
        load_settings()
