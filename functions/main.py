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

# Cloud functions for the Launchpad backend - projects, completion toggles and
# user profiles.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.
#
# Bearer-token and App Check verification are handled before these functions
# run; each function only validates its own parameters.

# Standard library imports
import os
from typing import Any

# Third-party library imports
from firebase_admin import initialize_app, firestore
from firebase_functions import https_fn, identity_fn, logger, options
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

# Local application imports
from launchpad.completion import CompletionToggleEngine
from launchpad.profiles import ProfileService
from launchpad.projects import ProjectService
from launchpad.relationships import RelationshipManager
from shared.document_store import DocumentStore
from shared.errors import BadRequestError, LaunchpadError, NotFoundError
from shared.firestore_store import FirestoreDocumentStore

initialize_app()


def _is_locally_emulated() -> bool:
    """Returns True if the function is running in the local emulator."""
    return os.environ.get("FUNCTIONS_EMULATOR") == "true"


def _document_store() -> DocumentStore:
    return FirestoreDocumentStore(firestore.client())


def _https_error(e: LaunchpadError) -> https_fn.HttpsError:
    if isinstance(e, BadRequestError):
        return https_fn.HttpsError(
            https_fn.FunctionsErrorCode.INVALID_ARGUMENT, str(e)
        )
    if isinstance(e, NotFoundError):
        return https_fn.HttpsError(https_fn.FunctionsErrorCode.NOT_FOUND, str(e))
    logger.error(f"Store failure: {e}")
    return https_fn.HttpsError(https_fn.FunctionsErrorCode.INTERNAL, str(e))


def _jsonable(value: Any) -> Any:
    """Firestore timestamps become ISO-8601 strings in callable responses."""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


@identity_fn.before_user_created()
def create_user_document(event: identity_fn.AuthBlockingEvent) -> None:
    """
    Creates the Firestore user document when an auth identity is created.

    The emulator has no server timestamps, so the join date falls back to the
    local clock there.
    """
    joined_date = None if _is_locally_emulated() else SERVER_TIMESTAMP
    try:
        ProfileService(_document_store()).create_user_document(
            event.data.uid, joined_date=joined_date
        )
    except LaunchpadError as e:
        raise _https_error(e)


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def create_project(req: https_fn.CallableRequest) -> dict:
    """
    Creates a project and adds it to the user's current projects.

    Args:
        req (https_fn.CallableRequest): Contains `userId` and `projectData`
            (which must carry `projectId`).

    Returns:
        {"projectId": ...}
    """
    try:
        project_id = RelationshipManager(_document_store()).create_project(
            req.data.get("userId"), req.data.get("projectData")
        )
    except LaunchpadError as e:
        raise _https_error(e)
    return {"projectId": project_id}


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def read_project(req: https_fn.CallableRequest) -> dict:
    try:
        project = ProjectService(_document_store()).read_project(
            req.data.get("projectId")
        )
    except LaunchpadError as e:
        raise _https_error(e)
    return _jsonable(project)


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def update_project(req: https_fn.CallableRequest) -> dict:
    try:
        ProjectService(_document_store()).update_project(
            req.data.get("projectId"), req.data.get("updatedData")
        )
    except LaunchpadError as e:
        raise _https_error(e)
    return {"status": "success"}


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def delete_project(req: https_fn.CallableRequest) -> dict:
    """
    Deletes a project and removes it from every user that references it.

    Args:
        req (https_fn.CallableRequest): Contains `projectId` and `userId`.
    """
    try:
        RelationshipManager(_document_store()).delete_project(
            req.data.get("projectId"), req.data.get("userId")
        )
    except LaunchpadError as e:
        raise _https_error(e)
    return {"status": "success"}


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def set_current_step(req: https_fn.CallableRequest) -> dict:
    try:
        ProjectService(_document_store()).set_current_step(
            req.data.get("projectId"), req.data.get("currentStep")
        )
    except LaunchpadError as e:
        raise _https_error(e)
    return {"status": "success"}


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def get_current_projects(req: https_fn.CallableRequest) -> dict:
    try:
        current_projects = RelationshipManager(
            _document_store()
        ).list_current_projects(req.data.get("userId"))
    except LaunchpadError as e:
        raise _https_error(e)
    return {"currentProjects": current_projects}


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def get_achievements(req: https_fn.CallableRequest) -> dict:
    try:
        achievements = ProfileService(_document_store()).list_achievements(
            req.data.get("userId")
        )
    except LaunchpadError as e:
        raise _https_error(e)
    return {"achievements": _jsonable(achievements)}


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def toggle_direction_complete(req: https_fn.CallableRequest) -> dict:
    """
    Flips the "complete" status of a direction in a project.

    Args:
        req (https_fn.CallableRequest): Contains `projectId` and `directionId`.

    Returns:
        {"complete": <new status>}
    """
    try:
        complete = CompletionToggleEngine(_document_store()).toggle_direction(
            req.data.get("projectId"), req.data.get("directionId")
        )
    except LaunchpadError as e:
        raise _https_error(e)
    return {"complete": complete}


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def toggle_achievement_complete(req: https_fn.CallableRequest) -> dict:
    """
    Flips the "complete" status of an achievement in a project, recording it
    in the user's achievement history when it becomes complete.

    Args:
        req (https_fn.CallableRequest): Contains `userId`, `projectId` and
            `achievementId`.

    Returns:
        {"complete": <new status>}
    """
    try:
        complete = CompletionToggleEngine(_document_store()).toggle_achievement(
            req.data.get("projectId"),
            req.data.get("achievementId"),
            req.data.get("userId"),
        )
    except LaunchpadError as e:
        raise _https_error(e)
    return {"complete": complete}


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def get_profile_picture(req: https_fn.CallableRequest) -> dict:
    try:
        picture = ProfileService(_document_store()).get_profile_picture(
            req.data.get("userId")
        )
    except LaunchpadError as e:
        raise _https_error(e)
    return {"profilePicture": picture}


@https_fn.on_call(memory=options.MemoryOption.MB_256)
def set_profile_picture(req: https_fn.CallableRequest) -> dict:
    try:
        ProfileService(_document_store()).set_profile_picture(
            req.data.get("userId"), req.data.get("profilePicture")
        )
    except LaunchpadError as e:
        raise _https_error(e)
    return {"status": "success"}
