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
"""User documents: creation, profile pictures and achievement history."""

import logging
import random
from typing import Any, Callable, List, Optional

from shared.document_store import DocumentStore, Transaction
from shared.errors import BadRequestError, NotFoundError, require
from shared.firebase_constants import USERS_COLLECTION
from shared.types import (
    PROFILE_PICTURE_COUNT,
    PROFILE_PICTURES,
    UserDoc,
    user_from_dict,
    user_to_dict,
    utc_now,
)

logger = logging.getLogger(__name__)


def random_profile_picture() -> str:
    return f"profile_picture_{random.randint(1, PROFILE_PICTURE_COUNT)}.png"


class ProfileService:
    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], Any] = utc_now,
    ):
        self.store = store
        self.clock = clock

    def create_user_document(
        self, user_id: str, joined_date: Optional[Any] = None
    ) -> dict:
        """
        Creates the user document for a newly created auth identity.

        Runs at most once per user: if the document already exists it is
        returned unchanged.

        Args:
            user_id: The auth uid, used as the document id.
            joined_date: Overrides the join timestamp (the Cloud Function passes
                Firestore's server timestamp sentinel).
        """
        require(userId=user_id)

        def _create(transaction: Transaction) -> dict:
            existing = transaction.get(USERS_COLLECTION, user_id)
            if existing is not None:
                return existing
            user = UserDoc(user_id=user_id, profile_picture=random_profile_picture())
            document = user_to_dict(user)
            # Set after conversion; Firestore sentinels must not be copied.
            document["joinedDate"] = (
                joined_date if joined_date is not None else self.clock()
            )
            transaction.set(USERS_COLLECTION, user_id, document)
            return document

        document = self.store.run_transaction(_create)
        logger.info("User document ready for %s", user_id)
        return document

    def _get_user(self, user_id: str) -> dict:
        require(userId=user_id)
        user = self.store.get(USERS_COLLECTION, user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def get_profile_picture(self, user_id: str) -> str:
        return self._get_user(user_id).get("profilePicture")

    def set_profile_picture(self, user_id: str, profile_picture: str) -> None:
        require(userId=user_id, profilePicture=profile_picture)
        if profile_picture not in PROFILE_PICTURES:
            raise BadRequestError(
                f"Bad Request: unknown profilePicture {profile_picture!r}."
            )

        def _set(transaction: Transaction) -> None:
            if transaction.get(USERS_COLLECTION, user_id) is None:
                raise NotFoundError("user", user_id)
            transaction.update(
                USERS_COLLECTION, user_id, {"profilePicture": profile_picture}
            )

        self.store.run_transaction(_set)
        logger.info("User %s set profile picture to %s", user_id, profile_picture)

    def list_achievements(self, user_id: str) -> List[dict]:
        """Returns the user's achievement history, oldest first."""
        return user_from_dict(self._get_user(user_id)).achievements
