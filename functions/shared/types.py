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

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from dacite import Config, from_dict

from shared.json_utils import convert_keys

PROFILE_PICTURE_COUNT = 9
DEFAULT_PROFILE_PICTURE = "default"
PROFILE_PICTURES = tuple(
    f"profile_picture_{i}.png" for i in range(1, PROFILE_PICTURE_COUNT + 1)
) + (DEFAULT_PROFILE_PICTURE,)


@dataclass
class AchievementRecord:
    """An entry in a user's achievement history. Never mutated once written."""

    id: str
    name: Optional[str]
    date: Any  # datetime, or a Firestore timestamp once read back


@dataclass
class UserDoc:
    """Typed view of a document in the `users` collection."""

    user_id: str = ""
    profile_picture: str = DEFAULT_PROFILE_PICTURE
    joined_date: Any = None
    current_projects: List[str] = field(default_factory=list)
    # Stored history records are passed through untouched.
    achievements: List[dict] = field(default_factory=list)
    completed_projects: List[str] = field(default_factory=list)


def user_from_dict(data: dict) -> UserDoc:
    records = data.get("achievements")
    fields = {k: v for k, v in data.items() if k != "achievements"}
    # Lists may be stored as null by older clients.
    snake = {
        k: v
        for k, v in convert_keys(fields, "camel_to_snake").items()
        if v is not None
    }
    if records is not None:
        snake["achievements"] = list(records)
    return from_dict(data_class=UserDoc, data=snake, config=Config(check_types=False))


def user_to_dict(user: UserDoc) -> dict:
    return convert_keys(asdict(user), "snake_to_camel")


def achievement_to_dict(record: AchievementRecord) -> dict:
    return convert_keys(asdict(record), "snake_to_camel")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
