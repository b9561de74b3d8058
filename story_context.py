"""Story context value type and canonical cache-key derivation."""

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional, Tuple

# ASCII unit separator; field values are escaped so it can never leak in.
KEY_SEPARATOR = "\x1f"

KEY_FIELDS: Tuple[str, ...] = ("user_id", "genre", "tone", "character", "setting")

# camelCase names used by the HTTP layer -> field names
_MAPPING_ALIASES = {
    "userId": "user_id",
    "user_id": "user_id",
    "genre": "genre",
    "tone": "tone",
    "character": "character",
    "setting": "setting",
}


def _field_text(value: Any) -> str:
    return "" if value is None else str(value)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace(KEY_SEPARATOR, "\\u001f")


@dataclass(frozen=True)
class StoryContext:
    """Semantic key under which generated story content is memoized."""

    user_id: str
    genre: Optional[str] = None
    tone: Optional[str] = None
    character: Optional[str] = None
    setting: Optional[str] = None

    def normalized(self) -> Tuple[str, ...]:
        """Return all key fields in fixed order with unset fields as ''."""
        return tuple(_field_text(getattr(self, name)) for name in KEY_FIELDS)

    def cache_key(self) -> str:
        return context_key(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StoryContext):
            return NotImplemented
        return self.normalized() == other.normalized()

    def __hash__(self) -> int:
        return hash(self.normalized())

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "StoryContext":
        """
        Build a context from a request-style mapping.

        Accepts the camelCase keys sent by clients (``userId``) as well as
        snake_case ones.  Keys that are not part of the cache key (audience,
        age, choiceHistory, ...) are ignored.
        """
        values = {}
        for raw_key, value in data.items():
            name = _MAPPING_ALIASES.get(raw_key)
            if name is None or value is None:
                continue
            values[name] = value if isinstance(value, str) else str(value)

        if not values.get("user_id"):
            raise ValueError("story context requires a non-empty userId")
        return cls(**values)


def context_key(context: StoryContext) -> str:
    """
    Derive the canonical cache key for *context*.

    Unset fields become empty strings, each value is escaped, and the five
    fields are joined in fixed order with KEY_SEPARATOR.  Equivalent contexts
    always produce the same key and distinct ones never collide.
    """
    return KEY_SEPARATOR.join(_escape(value) for value in context.normalized())


def describe(context: StoryContext) -> str:
    """Short human-readable form for log lines."""
    parts = [
        f"{f.name}={getattr(context, f.name)!r}" for f in fields(context) if getattr(context, f.name) is not None
    ]
    return ", ".join(parts)
