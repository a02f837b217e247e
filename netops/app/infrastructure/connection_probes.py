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
"""Device reachability probes."""

from __future__ import annotations

import logging

from netmiko import ConnectHandler  # type: ignore[import-untyped]
from netmiko.exceptions import (  # type: ignore[import-untyped]
    NetmikoAuthenticationException,
    NetmikoTimeoutException,
)

from netops.app.domain.models import DeviceProfile
from netops.app.domain.vendors import get_vendor_profile

logger = logging.getLogger(__name__)

CONNECTION_TIMEOUT = 10


class SimulatedConnectionProbe:
    """Accepts any device with complete credentials."""

    def probe(self, device: DeviceProfile) -> tuple[bool, str | None]:
        if not device.has_credentials:
            return False, "Incomplete device credentials"
        return True, None


class NetmikoConnectionProbe:
    """Logs in, reads the prompt and disconnects."""

    def __init__(self, timeout: float = CONNECTION_TIMEOUT):
        self.timeout = timeout

    def probe(self, device: DeviceProfile) -> tuple[bool, str | None]:
        """
        Check that the device accepts the stored credentials.

        Args:
            device: Device with complete credentials

        Returns:
            Tuple of (success, error message)
        """
        credentials = device.credentials
        if credentials is None or not credentials.is_complete:
            return False, "Incomplete device credentials"
        profile = get_vendor_profile(device.vendor)
        try:
            connection = ConnectHandler(
                device_type=profile.netmiko_device_type,
                host=credentials.host,
                port=credentials.port,
                username=credentials.username,
                password=credentials.password,
                timeout=self.timeout,
            )
            try:
                prompt = connection.find_prompt()
            finally:
                connection.disconnect()
        except NetmikoAuthenticationException as e:
            return False, f"Authentication failed: {str(e)}"
        except NetmikoTimeoutException as e:
            return False, f"Connection timeout: {str(e)}"
        except Exception as e:
            return False, f"Connection error: {str(e)}"
        logger.info("Probe of %s succeeded at prompt %s", credentials.key, prompt)
        return True, None
