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
"""
Keeps users' `currentProjects` lists consistent with project documents.

Projects carry an `owners` reverse index naming every user that references
them, written in the same transaction as the user's `currentProjects`, so that
deleting a project can clean up every referencing user.
"""

import logging
from typing import List, Optional

from shared.document_store import DocumentStore, Transaction
from shared.errors import BadRequestError, NotFoundError, require
from shared.firebase_constants import PROJECTS_COLLECTION, USERS_COLLECTION

logger = logging.getLogger(__name__)

OWNERS_FIELD = "owners"


class RelationshipManager:
    def __init__(self, store: DocumentStore):
        self.store = store

    def create_project(self, user_id: str, project_data: Optional[dict]) -> str:
        """
        Persists a project and links it to its owner.

        A project id that already exists is overwritten; users already linked
        to it stay in its owner index. The id is appended to the owner's
        `currentProjects` only if it is not already listed.

        Returns:
            The project id.
        """
        require(userId=user_id, projectData=project_data)
        if not isinstance(project_data, dict):
            raise BadRequestError("Bad Request: projectData must be an object.")
        project_id = project_data.get("projectId")
        if not project_id or not isinstance(project_id, str):
            raise BadRequestError("Bad Request: projectData.projectId is required.")

        def _create(transaction: Transaction) -> str:
            user = transaction.get(USERS_COLLECTION, user_id)
            existing = transaction.get(PROJECTS_COLLECTION, project_id)
            if user is None:
                raise NotFoundError("user", user_id)

            owners = list((existing or {}).get(OWNERS_FIELD) or [])
            if user_id not in owners:
                owners.append(user_id)
            project = dict(project_data)
            project[OWNERS_FIELD] = owners
            transaction.set(PROJECTS_COLLECTION, project_id, project)

            current_projects = list(user.get("currentProjects") or [])
            if project_id not in current_projects:
                current_projects.append(project_id)
                transaction.update(
                    USERS_COLLECTION,
                    user_id,
                    {"currentProjects": current_projects},
                )
            return project_id

        try:
            self.store.run_transaction(_create)
        except NotFoundError:
            logger.warning(
                "Not creating project %s: user %s not found", project_id, user_id
            )
            raise
        logger.info("Created project %s for user %s", project_id, user_id)
        return project_id

    def delete_project(self, project_id: str, user_id: str) -> None:
        """
        Deletes a project and removes it from every referencing user.

        Removing an id that a user does not list is a no-op. Users named in the
        owner index that no longer exist are skipped.
        """
        require(projectId=project_id, userId=user_id)

        def _delete(transaction: Transaction) -> None:
            user = transaction.get(USERS_COLLECTION, user_id)
            if user is None:
                raise NotFoundError("user", user_id)
            project = transaction.get(PROJECTS_COLLECTION, project_id)

            users = {user_id: user}
            for owner_id in (project or {}).get(OWNERS_FIELD) or []:
                if owner_id not in users:
                    users[owner_id] = transaction.get(USERS_COLLECTION, owner_id)

            if project is not None:
                transaction.delete(PROJECTS_COLLECTION, project_id)
            for owner_id, owner in users.items():
                if owner is None:
                    continue
                current_projects = owner.get("currentProjects") or []
                remaining = [pid for pid in current_projects if pid != project_id]
                if len(remaining) != len(current_projects):
                    transaction.update(
                        USERS_COLLECTION, owner_id, {"currentProjects": remaining}
                    )

        try:
            self.store.run_transaction(_delete)
        except NotFoundError:
            logger.warning(
                "Not deleting project %s: user %s not found", project_id, user_id
            )
            raise
        logger.info("Deleted project %s (requested by user %s)", project_id, user_id)

    def list_current_projects(self, user_id: str) -> List[str]:
        """Returns the user's project ids in insertion order."""
        require(userId=user_id)
        user = self.store.get(USERS_COLLECTION, user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return list(user.get("currentProjects") or [])
