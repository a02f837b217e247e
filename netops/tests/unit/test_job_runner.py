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
"""Unit tests for per-device job execution."""

from pathlib import Path

import pytest

from fake_shell import ScriptedChannel, ScriptedConnector
from netops.app.application.job_runner import JobRunner, RunnerConfig
from netops.app.application.segmenter import NO_OUTPUT
from netops.app.application.session_driver import SessionDriver
from netops.app.domain.errors import AuthFailure
from netops.app.domain.models import (
    CommandSpec,
    Credentials,
    DeviceProfile,
    Job,
    JobKind,
    JobState,
    count_blocks,
)
from netops.app.infrastructure.file_backup_store import FileBackupStore
from netops.app.infrastructure.in_memory_history_store import InMemoryHistoryStore
from netops.app.infrastructure.progress_broadcaster import ProgressBroadcaster
from netops.app.infrastructure.simulated_shell import SimulatedShellConnector
from netops.app.infrastructure.vendor_result_parser import VendorResultParser

FAST = RunnerConfig(
    command_delay=0.01, grace_period=0.05, inactivity_timeout=0.2, job_timeout=5.0
)


def make_device(vendor="huawei", password="secret", name="core-sw-1"):
    return DeviceProfile(
        device_id="dev-1",
        name=name,
        vendor=vendor,
        credentials=Credentials(host="10.0.0.1", username="admin", password=password),
    )


class RecordingPublisher:
    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)


class ExplodingParser:
    def parse(self, vendor, command, output):
        raise RuntimeError("parser bug")


class BrokenBackupStore:
    def save(self, device, text):
        raise PermissionError("read-only file system")


def make_runner(connector, tmp_path, parser=None, publisher=None, config=FAST, store=None):
    history = InMemoryHistoryStore()
    runner = JobRunner(
        driver=SessionDriver(connector),
        parser=parser or VendorResultParser(),
        backup_store=store or FileBackupStore(tmp_path),
        history=history,
        publisher=publisher,
        config=config,
    )
    return runner, history


@pytest.mark.asyncio
async def test_huawei_cpu_inspection_is_parsed(tmp_path):
    connector = SimulatedShellConnector(outputs={"display cpu-usage": "CPU Usage   : 37%"})
    runner, history = make_runner(connector, tmp_path)
    job = Job.create(
        "dev-1", JobKind.INSPECTION, [CommandSpec(category="CPU", command="display cpu-usage")]
    )

    outcome = await runner.run(job, make_device())

    assert outcome.status == JobState.SUCCESS
    block = outcome.result["CPU"]["display cpu-usage"]
    assert block.category == "CPU"
    assert block.type == "cpu"
    assert block.data == {"usage": 37}
    assert job.state == JobState.SUCCESS
    assert history.get("dev-1")[0].status == "success"


@pytest.mark.asyncio
async def test_every_command_gets_exactly_one_block(tmp_path):
    connector = SimulatedShellConnector(outputs={"display clock": ""})
    runner, _ = make_runner(connector, tmp_path)
    commands = [
        CommandSpec(category="Health", command="display fan"),
        CommandSpec(category="Health", command="display fan"),
        CommandSpec(category="Health", command="display clock", name="Clock"),
        CommandSpec(category="System", command="display version"),
    ]
    job = Job.create("dev-1", JobKind.INSPECTION, commands)

    outcome = await runner.run(job, make_device())

    assert count_blocks(outcome.result) == len(commands)
    assert set(outcome.result["Health"]) == {"display fan", "display fan (2)", "Clock"}
    assert outcome.result["Health"]["Clock"].data == {"raw": NO_OUTPUT}
    assert outcome.result["Health"]["display fan"].type == "fan"
    assert outcome.raw_log is not None
    assert "Raw Log" not in outcome.result


@pytest.mark.asyncio
async def test_long_output_is_captured_whole(tmp_path):
    long_output = "\n".join(f"GigabitEthernet0/0/{i}  up  up" for i in range(1, 40))
    connector = SimulatedShellConnector(
        outputs={"display interface brief": long_output}, page_lines=10
    )
    runner, _ = make_runner(connector, tmp_path)
    job = Job.create(
        "dev-1",
        JobKind.INSPECTION,
        [CommandSpec(category="Ports", command="display interface brief", parse="raw")],
    )

    outcome = await runner.run(job, make_device())

    text = outcome.result["Ports"]["display interface brief"].data["raw"]
    assert text.count("GigabitEthernet") == 39
    assert "More" not in text


@pytest.mark.asyncio
async def test_parser_exception_falls_back_to_raw_text(tmp_path):
    runner, _ = make_runner(SimulatedShellConnector(), tmp_path, parser=ExplodingParser())
    job = Job.create(
        "dev-1", JobKind.INSPECTION, [CommandSpec(category="CPU", command="display cpu-usage")]
    )

    outcome = await runner.run(job, make_device())

    assert outcome.succeeded
    block = outcome.result["CPU"]["display cpu-usage"]
    assert block.type == "raw"
    assert "CPU Usage" in block.data["raw"]


@pytest.mark.asyncio
async def test_progress_events_cover_start_commands_and_end(tmp_path):
    publisher = RecordingPublisher()
    runner, _ = make_runner(SimulatedShellConnector(), tmp_path, publisher=publisher)
    job = Job.create(
        "dev-1",
        JobKind.INSPECTION,
        [
            CommandSpec(category="CPU", command="display cpu-usage"),
            CommandSpec(category="Memory", command="display memory"),
        ],
    )

    await runner.run(job, make_device())

    progress = [event.progress for event in publisher.events]
    assert len(publisher.events) == 4
    assert progress == sorted(progress)
    assert publisher.events[0].status == "running"
    assert publisher.events[0].message.startswith("Attempting to connect to 10.0.0.1:22")
    assert publisher.events[-1].progress == 100
    assert publisher.events[-1].status == "success"
    assert "Raw Log" in publisher.events[-1].result


@pytest.mark.asyncio
async def test_backup_writes_cleaned_configuration(tmp_path):
    runner, history = make_runner(SimulatedShellConnector(), tmp_path)
    job = Job.create("dev-1", JobKind.BACKUP)

    outcome = await runner.run(job, make_device())

    assert outcome.succeeded
    record = outcome.backup
    saved = Path(record.path).read_text(encoding="utf-8")
    assert record.size == len(saved)
    assert record.filename.startswith("core-sw-1_")
    assert "sysname 10-0-0-1" in saved
    assert "More" not in saved
    assert "return" not in saved.split("\n")
    assert outcome.result["Backup"]["Configuration"].data == record.to_dict()
    assert history.get("dev-1")[0].backup == record


@pytest.mark.asyncio
async def test_backup_without_trailing_prompt_ends_on_inactivity(tmp_path):
    config = "\r\n".join(["#", "sysname EDGE"] + [f" vlan {i}" for i in range(1, 30)])
    channel = ScriptedChannel(
        replies={"display current-configuration": [f"display current-configuration\r\n{config}\r\n"]},
        hangup_on={"quit"},
    )
    runner, _ = make_runner(ScriptedConnector(channel), tmp_path)
    job = Job.create("dev-1", JobKind.BACKUP)

    outcome = await runner.run(job, make_device())

    assert outcome.succeeded
    saved = Path(outcome.backup.path).read_text(encoding="utf-8")
    assert outcome.backup.size == len(saved)
    assert saved.startswith("#\nsysname EDGE")
    assert channel.writes[-1] == "quit\n"


@pytest.mark.asyncio
async def test_auth_failure_is_reported_and_recorded(tmp_path):
    publisher = RecordingPublisher()
    connector = ScriptedConnector(error=AuthFailure("Authentication failed for admin@10.0.0.1:22"))
    runner, history = make_runner(connector, tmp_path, publisher=publisher)
    job = Job.create(
        "dev-1", JobKind.INSPECTION, [CommandSpec(category="CPU", command="display cpu-usage")]
    )

    outcome = await runner.run(job, make_device())

    assert outcome.status == JobState.FAILED
    assert outcome.error_kind == "auth"
    assert outcome.error == "Authentication failed for admin@10.0.0.1:22"
    assert job.state == JobState.FAILED
    assert history.get("dev-1")[0].error == outcome.error
    assert publisher.events[-1].status == "failed"


@pytest.mark.asyncio
async def test_timeout_keeps_partial_transcript_as_raw_log(tmp_path):
    channel = ScriptedChannel(
        replies={"system-view": ["system-view\r\nslow device\r\n"]},
        banner="\r\n<HUAWEI>",
    )
    config = RunnerConfig(command_delay=0.01, grace_period=5.0, job_timeout=0.3)
    runner, _ = make_runner(ScriptedConnector(channel), tmp_path, config=config)
    job = Job.create(
        "dev-1", JobKind.INSPECTION, [CommandSpec(category="CPU", command="display cpu-usage")]
    )

    outcome = await runner.run(job, make_device())

    assert outcome.error_kind == "timeout"
    assert outcome.result == {}
    assert "slow device" in outcome.raw_log.original


@pytest.mark.asyncio
async def test_incomplete_credentials_fail_without_connecting(tmp_path):
    connector = ScriptedConnector()
    runner, _ = make_runner(connector, tmp_path)
    job = Job.create("dev-1", JobKind.BACKUP)

    outcome = await runner.run(job, make_device(password=""))

    assert outcome.error_kind == "invalid"
    assert connector.opened == []
    assert job.state == JobState.FAILED


@pytest.mark.asyncio
async def test_storage_error_fails_backup(tmp_path):
    runner, _ = make_runner(SimulatedShellConnector(), tmp_path, store=BrokenBackupStore())

    outcome = await runner.run(Job.create("dev-1", JobKind.BACKUP), make_device())

    assert outcome.error_kind == "storage"
    assert "read-only" in outcome.error


@pytest.mark.asyncio
async def test_broadcaster_subscriber_sees_terminal_event(tmp_path):
    broadcaster = ProgressBroadcaster()
    subscription = broadcaster.subscribe(device_id="dev-1")
    runner, _ = make_runner(SimulatedShellConnector(), tmp_path, publisher=broadcaster)

    await runner.run(Job.create("dev-1", JobKind.BACKUP), make_device())

    events = [await subscription.get() for _ in range(subscription.pending())]
    assert events[0].progress == 1
    assert events[-1].status == "success"
