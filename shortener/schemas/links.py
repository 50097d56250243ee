import re
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from shortener.schemas.base import CamelModel

SLUG_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,64}$")


class LinkResponse(CamelModel):
    id: int
    slug: str
    title: Optional[str] = None
    destination: str
    status: str
    clicks: int = 0
    max_clicks: int = 0
    schedule_start: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    owner_email: Optional[str] = None
    short_url: str
    created_at: datetime
    updated_at: datetime


class AdminLinksPage(CamelModel):
    links: list[LinkResponse]
    page: int
    total_pages: int
    total_links: int


class LinkCreate(CamelModel):
    destination: str = Field(min_length=1, max_length=2048)
    title: Optional[str] = Field(default=None, max_length=255)
    slug: Optional[str] = None
    max_clicks: int = Field(default=0, ge=0)
    schedule_start: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @field_validator("destination")
    @classmethod
    def normalize_destination(cls, value: str) -> str:
        cleaned = value.strip()
        if not re.match(r"^https?://", cleaned, re.IGNORECASE):
            raise ValueError("Destination must be an http(s) URL")
        return cleaned

    @field_validator("title")
    @classmethod
    def normalize_title(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        cleaned = value.strip()
        if not SLUG_PATTERN.match(cleaned):
            raise ValueError(
                "Slug must be 3-64 characters of letters, digits, '-' or '_'"
            )
        return cleaned


class LinkUpdate(CamelModel):
    status: Optional[str] = None
    max_clicks: Optional[int] = Field(default=None, ge=0)


class MessageResponse(CamelModel):
    message: str
