"""
HTTP routes for the Launchpad backend API.

Authentication and App Check verification happen upstream of these routes.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response

from backend.dependencies import (
    get_profile_service,
    get_project_service,
    get_relationship_manager,
    get_toggle_engine,
)
from backend.schemas import (
    CreateProjectRequest,
    CreateProjectResponse,
    CreateUserDocumentRequest,
    ProfilePictureRequest,
    ProfilePictureResponse,
    SetCurrentStepRequest,
    StatusResponse,
    ToggleResponse,
)
from launchpad.completion import CompletionToggleEngine
from launchpad.profiles import ProfileService
from launchpad.projects import ProjectService
from launchpad.relationships import RelationshipManager
from shared.errors import BadRequestError, LaunchpadError, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(e: LaunchpadError) -> HTTPException:
    if isinstance(e, BadRequestError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    logger.error("Store failure: %s", e)
    return HTTPException(status_code=500, detail="Internal Server Error")


@router.post(
    "/create_project", response_model=CreateProjectResponse, status_code=201
)
def create_project(
    payload: CreateProjectRequest,
    manager: RelationshipManager = Depends(get_relationship_manager),
):
    try:
        project_id = manager.create_project(payload.userId, payload.projectData)
    except LaunchpadError as e:
        raise _http_error(e) from e
    return CreateProjectResponse(projectId=project_id)


@router.get("/read_project")
def read_project(
    project_id: Optional[str] = Query(None, alias="projectId"),
    projects: ProjectService = Depends(get_project_service),
):
    try:
        return projects.read_project(project_id)
    except LaunchpadError as e:
        raise _http_error(e) from e


@router.post("/update_project", response_model=StatusResponse)
def update_project(
    project_id: Optional[str] = Query(None, alias="projectId"),
    fields: Optional[dict] = Body(None),
    projects: ProjectService = Depends(get_project_service),
):
    try:
        projects.update_project(project_id, fields)
    except LaunchpadError as e:
        raise _http_error(e) from e
    return StatusResponse(status="ok")


@router.delete("/delete_project", response_model=StatusResponse)
def delete_project(
    project_id: Optional[str] = Query(None, alias="projectId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    manager: RelationshipManager = Depends(get_relationship_manager),
):
    try:
        manager.delete_project(project_id, user_id)
    except LaunchpadError as e:
        raise _http_error(e) from e
    return StatusResponse(status="ok")


@router.post("/set_current_step", response_model=StatusResponse)
def set_current_step(
    payload: SetCurrentStepRequest,
    project_id: Optional[str] = Query(None, alias="projectId"),
    projects: ProjectService = Depends(get_project_service),
):
    try:
        projects.set_current_step(project_id, payload.currentStep)
    except LaunchpadError as e:
        raise _http_error(e) from e
    return StatusResponse(status="ok")


@router.get("/get_current_projects", response_model=list[str])
def get_current_projects(
    user_id: Optional[str] = Query(None, alias="userId"),
    manager: RelationshipManager = Depends(get_relationship_manager),
):
    try:
        current_projects = manager.list_current_projects(user_id)
    except LaunchpadError as e:
        raise _http_error(e) from e
    if not current_projects:
        return Response(status_code=204)
    return current_projects


@router.get("/get_achievements")
def get_achievements(
    user_id: Optional[str] = Query(None, alias="userId"),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        achievements = profiles.list_achievements(user_id)
    except LaunchpadError as e:
        raise _http_error(e) from e
    if not achievements:
        return Response(status_code=204)
    return achievements


@router.post("/toggle_direction_complete", response_model=ToggleResponse)
def toggle_direction_complete(
    project_id: Optional[str] = Query(None, alias="projectId"),
    direction_id: Optional[str] = Query(None, alias="directionId"),
    engine: CompletionToggleEngine = Depends(get_toggle_engine),
):
    try:
        complete = engine.toggle_direction(project_id, direction_id)
    except LaunchpadError as e:
        raise _http_error(e) from e
    return ToggleResponse(complete=complete)


@router.post("/toggle_achievement_complete", response_model=ToggleResponse)
def toggle_achievement_complete(
    user_id: Optional[str] = Query(None, alias="userId"),
    project_id: Optional[str] = Query(None, alias="projectId"),
    achievement_id: Optional[str] = Query(None, alias="achievementId"),
    engine: CompletionToggleEngine = Depends(get_toggle_engine),
):
    try:
        complete = engine.toggle_achievement(project_id, achievement_id, user_id)
    except LaunchpadError as e:
        raise _http_error(e) from e
    return ToggleResponse(complete=complete)


@router.get("/get_profile_picture", response_model=ProfilePictureResponse)
def get_profile_picture(
    user_id: Optional[str] = Query(None, alias="userId"),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        picture = profiles.get_profile_picture(user_id)
    except LaunchpadError as e:
        raise _http_error(e) from e
    return ProfilePictureResponse(profilePicture=picture)


@router.post("/set_profile_picture", response_model=StatusResponse)
def set_profile_picture(
    payload: ProfilePictureRequest,
    user_id: Optional[str] = Query(None, alias="userId"),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        profiles.set_profile_picture(user_id, payload.profilePicture)
    except LaunchpadError as e:
        raise _http_error(e) from e
    return StatusResponse(status="ok")


@router.post("/create_user_document", status_code=201)
def create_user_document(
    payload: CreateUserDocumentRequest,
    profiles: ProfileService = Depends(get_profile_service),
):
    """
    Creates the user document for a new auth identity. Called by the identity
    provider's user-created hook; repeated calls return the existing document.
    """
    try:
        return profiles.create_user_document(payload.userId)
    except LaunchpadError as e:
        raise _http_error(e) from e
