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
"""Reads and edits of project documents outside of the owner relationship."""

import logging

from launchpad.relationships import OWNERS_FIELD
from shared.document_store import DocumentStore, Transaction
from shared.errors import BadRequestError, NotFoundError, require
from shared.firebase_constants import PROJECTS_COLLECTION

logger = logging.getLogger(__name__)

# Fields only the relationship manager may write.
RESERVED_FIELDS = ("projectId", OWNERS_FIELD)


class ProjectService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def read_project(self, project_id: str) -> dict:
        """Returns the project document with its id, without the owner index."""
        require(projectId=project_id)
        project = self.store.get(PROJECTS_COLLECTION, project_id)
        if project is None:
            raise NotFoundError("project", project_id)
        project.pop(OWNERS_FIELD, None)
        return {**project, "projectId": project_id}

    def update_project(self, project_id: str, fields: dict) -> None:
        require(projectId=project_id, fields=fields)
        if not isinstance(fields, dict):
            raise BadRequestError("Bad Request: update body must be an object.")
        reserved = [name for name in RESERVED_FIELDS if name in fields]
        if reserved:
            raise BadRequestError(
                f"Bad Request: {', '.join(reserved)} cannot be updated."
            )

        def _update(transaction: Transaction) -> None:
            if transaction.get(PROJECTS_COLLECTION, project_id) is None:
                raise NotFoundError("project", project_id)
            transaction.update(PROJECTS_COLLECTION, project_id, fields)

        self.store.run_transaction(_update)
        logger.info("Updated fields %s of project %s", sorted(fields), project_id)

    def set_current_step(self, project_id: str, step_index: int) -> None:
        """Records which step of the project the user is working on."""
        require(projectId=project_id)
        if isinstance(step_index, bool) or not isinstance(step_index, int):
            raise BadRequestError("Bad Request: currentStep must be an integer.")

        def _set(transaction: Transaction) -> None:
            project = transaction.get(PROJECTS_COLLECTION, project_id)
            if project is None:
                raise NotFoundError("project", project_id)
            step_count = len(project.get("step") or [])
            if not 0 <= step_index < step_count:
                raise BadRequestError(
                    f"Bad Request: currentStep must be between 0 and {step_count - 1}."
                )
            transaction.update(
                PROJECTS_COLLECTION, project_id, {"currentStep": step_index}
            )

        self.store.run_transaction(_set)
        logger.info("Project %s is now on step %s", project_id, step_index)
