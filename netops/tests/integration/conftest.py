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
"""Fixtures that run the mock VRP SSH server in-process."""

import importlib.util
from pathlib import Path

import pytest_asyncio

SERVER_SCRIPT = Path(__file__).resolve().parents[1] / "mock_ssh_server" / "server.py"


def _load_mock_server():
    spec = importlib.util.spec_from_file_location("mock_ssh_server", SERVER_SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


mock_ssh_server = _load_mock_server()


@pytest_asyncio.fixture
async def mock_server():
    """Listen on an ephemeral port; yields (host, port)."""
    acceptor = await mock_ssh_server.start_server(port=0)
    try:
        yield "127.0.0.1", acceptor.get_port()
    finally:
        acceptor.close()
        await acceptor.wait_closed()
