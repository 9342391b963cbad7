# Copyright 2025 Google LLC
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
# ==============================================================================

"""Errors raised by the Launchpad services and document stores."""


class LaunchpadError(Exception):
    """Base class for all errors surfaced by the Launchpad core."""


class BadRequestError(LaunchpadError):
    """A required identifier or body field is missing or malformed."""


class NotFoundError(LaunchpadError):
    """A referenced user, project, direction or achievement does not exist."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource.capitalize()} not found: {identifier}")


class StoreFailureError(LaunchpadError):
    """The document store errored or a transaction exhausted its retries."""


def require(**identifiers) -> None:
    """Raises BadRequestError naming every missing identifier."""
    missing = [name for name, value in identifiers.items() if not value]
    if missing:
        raise BadRequestError(f"Bad Request: {', '.join(missing)} required.")
