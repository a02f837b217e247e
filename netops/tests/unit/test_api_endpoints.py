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
"""API tests against the simulated shell driver."""

import socket
import time
from datetime import datetime

import pytest
from fastapi import WebSocket
from fastapi.testclient import TestClient

from netops.app.api.main import build_services, create_app
from netops.app.domain.models import Credentials, DeviceProfile
from netops.app.infrastructure.simulated_shell import SimulatedShellConnector
from netops.app.settings import EngineSettings

DEVICE = {
    "id": "dev-1",
    "name": "core-1",
    "vendor": "huawei",
    "host": "10.0.0.1",
    "port": 22,
    "username": "admin",
    "password": "secret",
}


@pytest.fixture
def services(tmp_path):
    settings = EngineSettings(
        driver_mode="simulated",
        backup_root=str(tmp_path),
        command_delay=0.01,
        grace_period=0.05,
        inactivity_timeout=0.2,
        device_delay=0,
        job_timeout=10,
    )
    return build_services(settings)


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as test_client:
        yield test_client


def wait_for_job(client, job_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        job = client.get(f"/api/jobs/{job_id}").json()
        if job["state"] in {"success", "failed"}:
            return job
        time.sleep(0.05)
    raise AssertionError(f"job {job_id} did not finish")


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_inspection_runs_in_background(client):
    response = client.post(
        "/api/inspections",
        json={
            "device": DEVICE,
            "commands": [
                {"category": "CPU", "cmd": "display cpu-usage"},
                {"category": "Memory", "cmd": "display memory"},
            ],
        },
    )
    assert response.status_code == 200
    job_id = response.json()["job_id"]

    job = wait_for_job(client, job_id)

    assert job["state"] == "success"
    assert job["result"]["CPU"]["display cpu-usage"]["data"] == {"usage": 37}
    assert job["result"]["Raw Log"]["Complete Session Output"]["type"] == "raw"
    history = client.get("/api/inspection/history/dev-1").json()
    assert [entry["job_id"] for entry in history] == [job_id]
    assert history[0]["status"] == "success"


def test_inspection_category_filter(client):
    response = client.post(
        "/api/inspections",
        json={
            "device": DEVICE,
            "commands": [{"category": "CPU", "cmd": "display cpu-usage"}],
            "categories": ["Fans"],
        },
    )

    assert response.status_code == 400


def test_inspection_without_credentials_fails(client):
    device = {**DEVICE, "host": ""}
    response = client.post(
        "/api/inspections",
        json={"device": device, "commands": [{"category": "CPU", "cmd": "display cpu-usage"}]},
    )

    job = wait_for_job(client, response.json()["job_id"])

    assert job["state"] == "failed"
    assert job["error_kind"] == "invalid"


def test_unknown_job_is_404(client):
    assert client.get("/api/jobs/missing").status_code == 404


def test_backup_then_list_read_and_delete(client):
    response = client.post("/api/backups", json={"device": DEVICE})

    assert response.status_code == 200
    job = response.json()
    assert job["state"] == "success"
    path = job["backup"]["path"]

    listed = client.get("/api/devices/core-1/backups").json()
    assert [entry["path"] for entry in listed] == [path]

    content = client.get("/api/backups/content", params={"path": path}).json()
    assert "sysname 10-0-0-1" in content["content"]

    assert client.delete("/api/backups", params={"path": path}).status_code == 200
    assert client.get("/api/devices/core-1/backups").json() == []
    assert client.get("/api/backups/content", params={"path": path}).status_code == 404


def test_backup_paths_outside_root_are_rejected(client, tmp_path):
    outside = str(tmp_path.parent / "passwd")

    assert client.get("/api/backups/content", params={"path": outside}).status_code == 400
    assert client.delete("/api/backups", params={"path": outside}).status_code == 400


def test_backup_diff(client, services):
    device = DeviceProfile(
        device_id="dev-1",
        name="core-1",
        vendor="huawei",
        credentials=Credentials(host="10.0.0.1", username="admin", password="secret"),
    )
    old = services.backup_store.save(device, "sysname a\nreturn\n", now=datetime(2026, 1, 1))
    new = services.backup_store.save(device, "sysname b\nreturn\n", now=datetime(2026, 1, 2))

    response = client.post(
        "/api/backups/diff", json={"old_path": old.path, "new_path": new.path}
    )

    body = response.json()
    assert response.status_code == 200
    assert body["changed"] is True
    assert (body["added"], body["removed"], body["unchanged"]) == (1, 1, 1)


def test_device_test(client):
    response = client.post("/api/devices/test", json={"device": DEVICE})

    assert response.json() == {"success": True, "error": None}


def test_scheduler_lifecycle(client):
    response = client.post(
        "/api/scheduler/tasks",
        json={
            "cron_expression": "0 2 * * *",
            "devices": [DEVICE, {**DEVICE, "id": "dev-2", "name": "edge-2", "host": ""}],
            "kind": "backup",
        },
    )
    assert response.status_code == 200
    task = response.json()
    assert task["next_run_time"] is not None
    assert [t["task_id"] for t in client.get("/api/scheduler/tasks").json()] == [
        task["task_id"]
    ]

    summary = client.post(f"/api/scheduler/tasks/{task['task_id']}/run").json()
    assert summary["attempted"] == 1
    assert summary["skipped"] == 1
    assert summary["success_count"] == 1
    listed = client.get("/api/scheduler/tasks").json()
    assert listed[0]["last_summary"]["attempted"] == 1
    assert listed[0]["last_run_at"] is not None

    assert client.delete(f"/api/scheduler/tasks/{task['task_id']}").status_code == 200
    assert client.get("/api/scheduler/tasks").json() == []
    assert client.delete(f"/api/scheduler/tasks/{task['task_id']}").status_code == 404


def test_bad_cron_is_rejected(client):
    response = client.post(
        "/api/scheduler/tasks",
        json={"cron_expression": "x y z", "devices": [DEVICE], "kind": "backup"},
    )

    assert response.status_code == 400
    assert client.get("/api/scheduler/tasks").json() == []


def test_progress_websocket_streams_events(client):
    with client.websocket_connect("/ws/progress?device_id=dev-1") as websocket:
        client.post("/api/backups", json={"device": DEVICE})

        first = websocket.receive_json()
        assert first["type"] == "progress"
        assert first["device_id"] == "dev-1"
        assert first["status"] == "running"

        statuses = [first["status"]]
        while statuses[-1] == "running":
            statuses.append(websocket.receive_json()["status"])

    assert statuses[-1] == "success"


def wait_until(condition, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.02)
    return False


def test_progress_websocket_unsubscribes_on_close(client, services):
    with client.websocket_connect("/ws/progress"):
        assert wait_until(lambda: services.broadcaster.subscriber_count() == 1)

    assert wait_until(lambda: services.broadcaster.subscriber_count() == 0)


def test_failed_websocket_handshake_leaves_no_subscriber(client, services, monkeypatch):
    async def refuse(self, *args, **kwargs):
        raise RuntimeError("handshake failed")

    monkeypatch.setattr(WebSocket, "accept", refuse)

    with pytest.raises(RuntimeError):
        with client.websocket_connect("/ws/progress"):
            pass

    assert services.broadcaster.subscriber_count() == 0


def test_backup_route_documents_truncation(client):
    operation = client.get("/openapi.json").json()["paths"]["/api/backups"]["post"]

    assert "truncated" in operation["description"]


def test_terminal_session_relays_shell_output(client):
    response = client.post(
        "/api/ssh/connect",
        json={"host": "10.0.0.1", "username": "admin", "password": "secret"},
    )
    assert response.status_code == 200
    session_id = response.json()["session_id"]

    assert client.post(
        f"/api/ssh/input/{session_id}", json={"command": "display cpu-usage\n"}
    ).json() == {"status": "sent"}
    client.post(f"/api/ssh/input/{session_id}", json={"command": "quit\n"})

    stream = client.get(f"/api/ssh/stream/{session_id}")
    assert stream.status_code == 200
    assert stream.headers["content-type"].startswith("text/plain")
    assert "<10-0-0-1>" in stream.text
    assert "CPU Usage            : 37%" in stream.text

    closed = client.post(f"/api/ssh/input/{session_id}", json={"command": "display version\n"})
    assert closed.status_code == 409

    assert client.post("/api/ssh/disconnect", json={"session_id": session_id}).status_code == 200
    assert client.get(f"/api/ssh/stream/{session_id}").status_code == 404


def test_terminal_unknown_session(client):
    assert client.post("/api/ssh/input/missing", json={"command": "x"}).status_code == 404
    assert client.get("/api/ssh/stream/missing").status_code == 404
    assert client.post("/api/ssh/disconnect", json={"session_id": "missing"}).status_code == 200


def test_terminal_connect_needs_password(client):
    response = client.post(
        "/api/ssh/connect", json={"host": "10.0.0.1", "username": "admin", "password": ""}
    )

    assert response.status_code == 422


def test_terminal_login_failure_is_401(tmp_path):
    settings = EngineSettings(driver_mode="simulated", backup_root=str(tmp_path))
    services = build_services(settings, connector=SimulatedShellConnector(reject_password="bad"))
    with TestClient(create_app(services)) as test_client:
        response = test_client.post(
            "/api/ssh/connect",
            json={"host": "10.0.0.1", "username": "admin", "password": "bad"},
        )

    assert response.status_code == 401


def test_ping_over_tcp(client):
    with socket.socket() as listener:
        listener.bind(("127.0.0.1", 0))
        listener.listen()
        port = listener.getsockname()[1]

        response = client.post(
            "/api/ping",
            json={
                "ips": ["127.0.0.1", "-c"],
                "options": {"tcp": True, "tcp_port": port, "timeout": 1000},
            },
        )

    assert response.status_code == 200
    results = response.json()
    assert [r["ip"] for r in results] == ["127.0.0.1", "-c"]
    assert results[0]["status"] == "online"
    assert results[1]["status"] == "error"


def test_ping_needs_targets(client):
    assert client.post("/api/ping", json={"ips": []}).status_code == 422
