"""
feedcache — Cache Entries

Tagged cache entry variants:
- SingleEntry: one flat payload (a resource loaded as an atomic unit)
- PagedEntry: the accumulated page sequence of a paginated resource

Both carry created_at/expires_at (float epoch seconds) and serialize to JSON
through the CacheEntry discriminated union for the durable tier.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from ..models import Page


class _EntryBase(BaseModel):
    created_at: float
    expires_at: float

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_expiry(self) -> "_EntryBase":
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be greater than created_at")
        return self

    def is_expired(self, now: float) -> bool:
        """Expired entries must be purged on access."""
        return now > self.expires_at

    def is_stale(self, now: float, stale_threshold: float) -> bool:
        """Stale entries are still served but trigger a background revalidation."""
        return now - self.created_at > stale_threshold

    def age(self, now: float) -> float:
        return now - self.created_at


class SingleEntry(_EntryBase):
    """Cache entry for a resource loaded in one request."""

    kind: Literal["single"] = "single"
    payload: Any = None

    @classmethod
    def create(cls, payload: Any, ttl: float, now: float) -> "SingleEntry":
        return cls(payload=payload, created_at=now, expires_at=now + ttl)


class PagedEntry(_EntryBase):
    """Cache entry holding an accumulated page sequence."""

    kind: Literal["paged"] = "paged"
    pages: list[Page] = Field(default_factory=list)

    @field_validator("pages")
    @classmethod
    def order_pages(cls, pages: list[Page]) -> list[Page]:
        """Pages are ordered by page number regardless of insertion order."""
        return sorted(pages, key=lambda page: page.page_number)

    @classmethod
    def create(cls, pages: list[Page], ttl: float, now: float) -> "PagedEntry":
        return cls(pages=pages, created_at=now, expires_at=now + ttl)


CacheEntry = Annotated[Union[SingleEntry, PagedEntry], Field(discriminator="kind")]

_entry_adapter: TypeAdapter[SingleEntry | PagedEntry] = TypeAdapter(CacheEntry)


def dump_entry(entry: SingleEntry | PagedEntry) -> str:
    """Serialize an entry to the durable tier's JSON representation."""
    return entry.model_dump_json()


def load_entry(data: str | bytes) -> SingleEntry | PagedEntry:
    """
    Deserialize a durable tier value.

    Raises:
        pydantic.ValidationError: If the value is not a well-formed entry
    """
    return _entry_adapter.validate_json(data)
