"""
Pydantic schemas for the Launchpad FastAPI backend.

Field names follow the camelCase wire format of the Launchpad clients.
Required identifiers are optional here so the services can reject missing
ones with a 400 rather than FastAPI's 422.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel


class CreateProjectRequest(BaseModel):
    userId: Optional[str] = None
    projectData: Optional[dict] = None


class CreateProjectResponse(BaseModel):
    projectId: str


class SetCurrentStepRequest(BaseModel):
    currentStep: Any = None


class ToggleResponse(BaseModel):
    complete: bool


class ProfilePictureRequest(BaseModel):
    profilePicture: Optional[str] = None


class ProfilePictureResponse(BaseModel):
    profilePicture: Optional[str] = None


class CreateUserDocumentRequest(BaseModel):
    userId: Optional[str] = None


class StatusResponse(BaseModel):
    status: Literal["ok"]
