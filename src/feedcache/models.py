"""
feedcache — Data Models

Pydantic models for the resource API payloads and pagination metadata.
Items are kept as plain JSON objects inside pages so a page survives the
durable tier's JSON round-trip unchanged; Post/ApiUser only perform the
basic shape checks on the way in.
"""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PaginationMeta(BaseModel):
    """Pagination metadata for one fetched page."""

    page_number: int = Field(..., ge=1, description="1-based page number")
    page_size: int = Field(..., ge=1, description="Items per page")
    total_items: int = Field(..., ge=0, description="Total items across all pages")
    total_pages: int = Field(..., ge=0, description="Total number of pages")
    has_more: bool = Field(..., description="Whether a page after this one exists")
    next_page: int | None = Field(default=None, description="Next page number, set iff has_more")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_next_page(self) -> "PaginationMeta":
        """Keep has_more and next_page consistent."""
        if self.has_more != (self.page_number < self.total_pages):
            raise ValueError("has_more must equal page_number < total_pages")
        if self.has_more and self.next_page != self.page_number + 1:
            raise ValueError("next_page must be page_number + 1 when has_more")
        if not self.has_more and self.next_page is not None:
            raise ValueError("next_page must be unset when has_more is false")
        return self

    @classmethod
    def compute(cls, page_number: int, page_size: int, total_items: int) -> "PaginationMeta":
        """Derive the full metadata from page number, size and total."""
        total_pages = math.ceil(total_items / page_size) if page_size > 0 else 0
        has_more = page_number < total_pages
        return cls(
            page_number=page_number,
            page_size=page_size,
            total_items=total_items,
            total_pages=total_pages,
            has_more=has_more,
            next_page=page_number + 1 if has_more else None,
        )


class Page(BaseModel):
    """One fetched page: its items plus pagination metadata."""

    items: list[Any] = Field(default_factory=list)
    pagination: PaginationMeta

    model_config = ConfigDict(frozen=True)

    @property
    def page_number(self) -> int:
        return self.pagination.page_number

    @property
    def has_more(self) -> bool:
        return self.pagination.has_more


class Post(BaseModel):
    """Post entity as served by the posts endpoint."""

    user_id: int = Field(..., alias="userId", ge=1)
    id: int = Field(..., ge=1)
    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class ApiUser(BaseModel):
    """Upstream user record; only the fields we rely on are required."""

    id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="allow")


class User(BaseModel):
    """User as exposed to UI collaborators."""

    id: int
    name: str
    initials: str

    @classmethod
    def from_api(cls, api_user: ApiUser) -> "User":
        """Build a User, deriving initials from the first two words of the name."""
        initials = "".join(word[0] for word in api_user.name.split()[:2]).upper()
        return cls(id=api_user.id, name=api_user.name, initials=initials)
