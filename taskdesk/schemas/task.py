"""Pydantic schemas for Task CRUD and listing."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, Field, field_validator

from taskdesk.models.task import DESCRIPTION_MAX_LENGTH
from taskdesk.schemas.base import CamelModel
from taskdesk.schemas.user import UserRef


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Task name is required")
    if len(v) > 200:
        raise ValueError("Task name must not exceed 200 characters")
    return v


class TaskCreate(CamelModel):
    name: str
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    start_date: datetime
    end_date: datetime
    assigned_to: int
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("description")
    @classmethod
    def _description(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else v


class TaskUpdate(CamelModel):
    name: str | None = None
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    start_date: datetime | None = None
    end_date: datetime | None = None
    assigned_to: int | None = None
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str | None:
        return _clean_name(v) if v is not None else v


class TaskCompletionUpdate(CamelModel):
    is_completed: bool | None = None
    completion_date: datetime | None = None


class TaskRead(CamelModel):
    id: int
    name: str
    description: str | None
    start_date: datetime
    end_date: datetime
    completion_date: datetime | None
    is_active: bool
    is_completed: bool
    # read from the eagerly loaded relationships, emitted as assignedTo / createdBy
    assigned_to: UserRef = Field(
        validation_alias=AliasChoices("assigned_to_user", "assignedTo"),
        serialization_alias="assignedTo",
    )
    created_by: UserRef = Field(
        validation_alias=AliasChoices("created_by_user", "createdBy"),
        serialization_alias="createdBy",
    )
    created_at: datetime | None
    updated_at: datetime | None


class TaskResponse(CamelModel):
    success: bool = True
    message: str | None = None
    data: TaskRead


class DeleteResponse(CamelModel):
    success: bool = True
    message: str
    data: dict = Field(default_factory=dict)
