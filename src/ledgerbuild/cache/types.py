"""Types for the persisted build cache document."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from ledgerbuild.cache.store import BuildCache

Namespace = Literal["server", "pages", "templates"]


class CacheState(BaseModel):
    model_config = ConfigDict(extra="ignore")

    server: str = ""
    pages: dict[str, str] = Field(default_factory=dict)
    templates: dict[str, str] = Field(default_factory=dict)


@dataclass(slots=True)
class CacheLoad:
    """Outcome of loading the cache; ``recovered`` marks a discarded document."""

    cache: BuildCache
    recovered: bool = False
    reason: str | None = None
