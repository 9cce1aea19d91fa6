from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field, model_validator

from sociai.specs.common.enums import Direction, MediaType


class MediaVariant(BaseModel):
    url: str
    mediaType: MediaType = MediaType.IMAGE


class VariantHistory(BaseModel):
    """Ordered, de-duplicated media variants of one post with a current pointer.

    Appending a URL that is already stored does not grow the history; it only
    moves the pointer onto the existing entry. Navigation wraps in both
    directions.
    """

    items: List[MediaVariant] = Field(default_factory=list)
    index: int = 0

    @model_validator(mode="after")
    def _dedupe_and_clamp(self) -> "VariantHistory":
        seen = set()
        unique: List[MediaVariant] = []
        for item in self.items:
            if item.url in seen:
                continue
            seen.add(item.url)
            unique.append(item)
        self.items = unique
        if not self.items or not 0 <= self.index < len(self.items):
            self.index = max(len(self.items) - 1, 0)
        return self

    def __len__(self) -> int:
        return len(self.items)

    @property
    def urls(self) -> List[str]:
        return [item.url for item in self.items]

    def append(self, url: str, media_type: MediaType = MediaType.IMAGE) -> MediaVariant:
        for pos, item in enumerate(self.items):
            if item.url == url:
                self.index = pos
                return item
        variant = MediaVariant(url=url, mediaType=media_type)
        self.items.append(variant)
        self.index = len(self.items) - 1
        return variant

    def current_variant(self) -> Optional[MediaVariant]:
        if not self.items:
            return None
        return self.items[self.index]

    def current(self) -> Optional[str]:
        variant = self.current_variant()
        return variant.url if variant else None

    def advance(self, direction: Union[Direction, str]) -> Optional[str]:
        step = 1 if Direction(direction) is Direction.NEXT else -1
        if not self.items:
            return None
        self.index = (self.index + step) % len(self.items)
        return self.current()

    def clear(self) -> None:
        self.items = []
        self.index = 0


__all__ = ["MediaVariant", "VariantHistory"]
