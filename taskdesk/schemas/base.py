"""Shared schema plumbing: camelCase JSON on the wire, snake_case in Python."""

from __future__ import annotations

import re

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

# Format checks shared by user and auth payloads
_EMAIL_RE = re.compile(r"^[\w.+-]+@([\w-]+\.)+[\w-]{2,}$")
_MOBILE_RE = re.compile(r"^\+[1-9]\d{1,14}$")


class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class MessageResponse(CamelModel):
    success: bool = True
    message: str


def normalise_email(v: str) -> str:
    v = v.strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError("Please provide a valid email")
    return v


def validate_mobile(v: str) -> str:
    v = v.strip()
    if not _MOBILE_RE.match(v):
        raise ValueError("Please provide a valid mobile number with country code")
    return v
