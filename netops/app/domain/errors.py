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
"""Terminal failures raised by a shell session."""


class SessionError(Exception):
    """Base class for failures that end a session run."""

    kind = "session"


class ConnectFailure(SessionError):
    """TCP connect or SSH negotiation failed."""

    kind = "connect"


class AuthFailure(SessionError):
    """The device rejected the credentials."""

    kind = "auth"


class ChannelFailure(SessionError):
    """The interactive shell could not be opened or broke mid-run."""

    kind = "channel"


class SessionTimeout(SessionError):
    """The overall run deadline expired.

    ``partial_transcript`` holds whatever was read before teardown. It is
    kept for diagnostics and is never reported as a successful result.
    """

    kind = "timeout"

    def __init__(self, message: str, partial_transcript: str = ""):
        super().__init__(message)
        self.partial_transcript = partial_transcript
