"""Variant options: transform parameters carried in the serving URL query.

Recognized options are typed fields; any other query key is kept verbatim in
``extensions`` so it survives a URL round trip. Instances are immutable: the
``with_*`` builders return a new object.
"""
from __future__ import annotations

import json
import posixpath
import re
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, ValidationError, model_validator

RECOGNIZED_KEYS = frozenset({"size", "resize_to_fill", "format", "quality"})
# Query keys owned by the serving protocol, never part of the options bag
RESERVED_QUERY_KEYS = frozenset({"key", "signature", "expires"})

FORMATS = ("jpeg", "png", "webp")
DEFAULT_FORMAT = "jpeg"
DEFAULT_QUALITY = 80
LOSSY_FORMATS = frozenset({"jpeg", "webp"})

_EXTENSION_FORMATS = {
    ".jpg": "jpeg",
    ".jpeg": "jpeg",
    ".png": "png",
    ".webp": "webp",
}
_INT_RE = re.compile(r"[+-]?\d+")


class VariantOptionsError(ValueError):
    """Malformed variant options (bad query value or builder argument)."""


def _parse_int(name: str, value: str) -> int:
    if not _INT_RE.fullmatch(value.strip()):
        raise VariantOptionsError(f"invalid {name}: {value!r}")
    return int(value)


def _parse_positive_int(name: str, value: str) -> int:
    n = _parse_int(name, value)
    if n <= 0:
        raise VariantOptionsError(f"invalid {name}: must be positive, got {value!r}")
    return n


def _parse_dimensions(value: str) -> tuple[int, int]:
    parts = value.split("x")
    if len(parts) != 2:
        raise VariantOptionsError(f"invalid resize_to_fill: {value!r}")
    return (
        _parse_positive_int("resize_to_fill", parts[0]),
        _parse_positive_int("resize_to_fill", parts[1]),
    )


def _query_items(query: Any) -> list[tuple[str, str]]:
    """Flatten QueryParams, a mapping of str -> str | list[str], or (key, value) pairs."""
    if hasattr(query, "multi_items"):
        return [(k, str(v)) for k, v in query.multi_items()]
    if isinstance(query, Mapping):
        items: list[tuple[str, str]] = []
        for k, v in query.items():
            if isinstance(v, (list, tuple)):
                items.extend((k, str(x)) for x in v)
            else:
                items.append((k, str(v)))
        return items
    return [(k, str(v)) for k, v in query]


def format_from_key(key: str) -> str | None:
    """Output format implied by a key's extension, or None."""
    return _EXTENSION_FORMATS.get(posixpath.splitext(key)[1].lower())


class VariantOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Crop the centre square and resize it to size x size
    size: PositiveInt | None = None
    # Crop the centre rectangle with aspect w:h and resize to exactly w x h
    resize_to_fill: tuple[PositiveInt, PositiveInt] | None = None
    # jpeg | png | webp; anything else resolves to jpeg
    format: str | None = None
    # 1..100 for lossy formats; anything else resolves to DEFAULT_QUALITY
    quality: int | None = None
    extensions: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_extension_keys(self) -> "VariantOptions":
        for k, values in self.extensions.items():
            if k in RECOGNIZED_KEYS or k in RESERVED_QUERY_KEYS:
                raise ValueError(f"{k!r} cannot be used as an extension option")
            if not values:
                raise ValueError(f"extension option {k!r} needs at least one value")
        return self

    @classmethod
    def parse(cls, query: Any) -> "VariantOptions":
        """Build options from a query. A malformed recognized key fails the whole parse.

        The first value of a recognized key wins; unrecognized keys keep all
        their values. Reserved keys (key, signature, expires) must be stripped
        by the caller.
        """
        grouped: dict[str, list[str]] = {}
        for k, v in _query_items(query):
            grouped.setdefault(k, []).append(v)

        fields: dict[str, Any] = {}
        extensions: dict[str, tuple[str, ...]] = {}
        for k, values in grouped.items():
            value = values[0]
            if k == "size":
                fields["size"] = _parse_positive_int(k, value)
            elif k == "resize_to_fill":
                fields["resize_to_fill"] = _parse_dimensions(value)
            elif k == "format":
                fields["format"] = value
            elif k == "quality":
                fields["quality"] = _parse_int(k, value)
            elif k in RESERVED_QUERY_KEYS:
                raise VariantOptionsError(f"reserved query key: {k}")
            else:
                extensions[k] = tuple(values)
        return cls._build(extensions=extensions, **fields)

    @classmethod
    def _build(cls, **fields: Any) -> "VariantOptions":
        try:
            return cls(**fields)
        except ValidationError as e:
            raise VariantOptionsError(str(e)) from e

    def _replace(self, **changes: Any) -> "VariantOptions":
        fields = {
            "size": self.size,
            "resize_to_fill": self.resize_to_fill,
            "format": self.format,
            "quality": self.quality,
            "extensions": dict(self.extensions),
        }
        fields.update(changes)
        return self._build(**fields)

    def with_size(self, size: int) -> "VariantOptions":
        return self._replace(size=size)

    def with_resize_to_fill(self, width: int, height: int) -> "VariantOptions":
        return self._replace(resize_to_fill=(width, height))

    def with_format(self, fmt: str) -> "VariantOptions":
        return self._replace(format=fmt)

    def with_quality(self, quality: int) -> "VariantOptions":
        return self._replace(quality=quality)

    def with_extension(self, key: str, *values: str) -> "VariantOptions":
        extensions = dict(self.extensions)
        extensions[key] = tuple(values)
        return self._replace(extensions=extensions)

    def is_empty(self) -> bool:
        return (
            self.size is None
            and self.resize_to_fill is None
            and self.format is None
            and self.quality is None
            and not self.extensions
        )

    def to_query(self) -> dict[str, str | tuple[str, ...]]:
        """Query form of the options (inverse of parse); empty options give {}."""
        query: dict[str, str | tuple[str, ...]] = {}
        if self.size is not None:
            query["size"] = str(self.size)
        if self.resize_to_fill is not None:
            w, h = self.resize_to_fill
            query["resize_to_fill"] = f"{w}x{h}"
        if self.format is not None:
            query["format"] = self.format
        if self.quality is not None:
            query["quality"] = str(self.quality)
        query.update(self.extensions)
        return query

    def resolved_format(self, origin_key: str) -> str:
        """Explicit format (unknown -> jpeg), else inferred from origin extension, else jpeg."""
        if self.format:
            fmt = self.format.lower()
            return fmt if fmt in FORMATS else DEFAULT_FORMAT
        return format_from_key(origin_key) or DEFAULT_FORMAT

    def resolved_quality(self) -> int:
        if self.quality is not None and 1 <= self.quality <= 100:
            return self.quality
        return DEFAULT_QUALITY

    def canonical_bytes(self, origin_key: str) -> bytes:
        """Deterministic encoding of the fully defaulted options; input of the variant digest."""
        payload: dict[str, Any] = {
            "format": self.resolved_format(origin_key),
            "quality": self.resolved_quality(),
        }
        if self.size is not None:
            payload["size"] = self.size
        if self.resize_to_fill is not None:
            payload["resize_to_fill"] = list(self.resize_to_fill)
        if self.extensions:
            payload["extensions"] = {k: list(v) for k, v in self.extensions.items()}
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
