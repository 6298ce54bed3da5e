"""Paginated list envelopes."""

from __future__ import annotations

from taskdesk.schemas.base import CamelModel
from taskdesk.schemas.task import TaskRead
from taskdesk.schemas.user import UserRead


class PageRef(CamelModel):
    page: int
    limit: int


class TaskListResponse(CamelModel):
    success: bool = True
    count: int
    pagination: dict[str, PageRef]
    data: list[TaskRead]


class UserListResponse(CamelModel):
    success: bool = True
    count: int
    pagination: dict[str, PageRef]
    data: list[UserRead]
