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
"""Flips completion flags on directions and achievements inside a project."""

import logging
from datetime import datetime
from typing import Callable, Optional

from shared.document_store import DocumentStore, Transaction
from shared.errors import NotFoundError, require
from shared.firebase_constants import PROJECTS_COLLECTION, USERS_COLLECTION
from shared.types import (
    AchievementRecord,
    achievement_to_dict,
    utc_now,
)

logger = logging.getLogger(__name__)


def find_direction(project: dict, direction_id: str) -> Optional[dict]:
    """
    Returns the first direction with a matching id, scanning steps in order
    and each step's `itemListElement` in order.
    """
    for step in project.get("step") or []:
        for direction in step.get("itemListElement") or []:
            if direction.get("id") == direction_id:
                return direction
    return None


def find_achievement(project: dict, achievement_id: str) -> Optional[dict]:
    """Returns the first achievement with a matching id."""
    for achievement in project.get("achievement") or []:
        if achievement.get("id") == achievement_id:
            return achievement
    return None


class CompletionToggleEngine:
    """
    Every toggle is an unconditional flip of the item's `complete` flag. The
    whole enclosing collection is written back inside a transaction.
    """

    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.clock = clock

    def toggle_direction(self, project_id: str, direction_id: str) -> bool:
        """Flips a direction's completion flag and returns the new value."""
        require(projectId=project_id, directionId=direction_id)

        def _toggle(transaction: Transaction) -> bool:
            project = transaction.get(PROJECTS_COLLECTION, project_id)
            if project is None:
                raise NotFoundError("project", project_id)
            direction = find_direction(project, direction_id)
            if direction is None:
                raise NotFoundError("direction", direction_id)

            direction["complete"] = not direction.get("complete", False)
            transaction.update(
                PROJECTS_COLLECTION, project_id, {"step": project["step"]}
            )
            return direction["complete"]

        try:
            complete = self.store.run_transaction(_toggle)
        except NotFoundError as e:
            logger.warning("Direction toggle failed: %s", e)
            raise
        logger.info(
            "Direction %s of project %s is now complete=%s",
            direction_id,
            project_id,
            complete,
        )
        return complete

    def toggle_achievement(
        self, project_id: str, achievement_id: str, user_id: str
    ) -> bool:
        """
        Flips an achievement's completion flag and returns the new value.

        On the transition into complete, a record of the achievement is
        appended to the user's history. Flipping back leaves the history alone.
        The project and the user must both exist before anything is scanned.
        """
        require(userId=user_id, projectId=project_id, achievementId=achievement_id)

        def _toggle(transaction: Transaction) -> bool:
            project = transaction.get(PROJECTS_COLLECTION, project_id)
            user = transaction.get(USERS_COLLECTION, user_id)
            if project is None:
                raise NotFoundError("project", project_id)
            if user is None:
                raise NotFoundError("user", user_id)
            achievement = find_achievement(project, achievement_id)
            if achievement is None:
                raise NotFoundError("achievement", achievement_id)

            achievement["complete"] = not achievement.get("complete", False)
            transaction.update(
                PROJECTS_COLLECTION,
                project_id,
                {"achievement": project["achievement"]},
            )

            if achievement["complete"]:
                history = list(user.get("achievements") or [])
                history.append(
                    achievement_to_dict(
                        AchievementRecord(
                            id=achievement_id,
                            name=achievement.get("name"),
                            date=self.clock(),
                        )
                    )
                )
                transaction.update(
                    USERS_COLLECTION,
                    user_id,
                    {"achievements": history},
                )
            return achievement["complete"]

        try:
            complete = self.store.run_transaction(_toggle)
        except NotFoundError as e:
            logger.warning("Achievement toggle failed: %s", e)
            raise
        logger.info(
            "Achievement %s of project %s is now complete=%s (user %s)",
            achievement_id,
            project_id,
            complete,
            user_id,
        )
        return complete
