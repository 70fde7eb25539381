"""
app/mappers/sanitizers.py

Named transform functions referenced from a mapping document's ``sanitize`` chain.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable, Iterable, Mapping
from typing import Any

Sanitizer = Callable[[Any], Any]

_TAG_PATTERN = re.compile(r"<[^>]*>")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_SLUG_STRIP_PATTERN = re.compile(r"[^a-z0-9\s-]")
_SLUG_DASH_PATTERN = re.compile(r"[\s_-]+")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_TRUE_VALUES = {"1", "true", "yes", "on", "y"}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def trim(value: Any) -> str:
    return _text(value).strip()


def lower(value: Any) -> str:
    return _text(value).lower()


def upper(value: Any) -> str:
    return _text(value).upper()


def title_case(value: Any) -> str:
    return _text(value).title()


def collapse_whitespace(value: Any) -> str:
    return _WHITESPACE_PATTERN.sub(" ", _text(value)).strip()


def strip_tags(value: Any) -> str:
    return _TAG_PATTERN.sub("", _text(value))


def slugify(value: Any) -> str:
    """
    Lowercase ASCII slug: ``"Hello, World!"`` -> ``"hello-world"``.
    """

    normalized = unicodedata.normalize("NFKD", _text(value)).encode("ascii", "ignore").decode("ascii")
    cleaned = _SLUG_STRIP_PATTERN.sub("", normalized.lower()).strip()
    return _SLUG_DASH_PATTERN.sub("-", cleaned).strip("-")


def to_int(value: Any) -> int:
    """
    Lenient integer cast; unparsable input becomes 0.
    """

    text = _text(value).strip().replace(",", "")
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return 0


def abs_int(value: Any) -> int:
    return abs(to_int(value))


def to_float(value: Any) -> float:
    text = _text(value).strip().replace(",", "")
    try:
        return float(text)
    except ValueError:
        return 0.0


def to_bool(value: Any) -> bool:
    return _text(value).strip().lower() in _TRUE_VALUES


def email(value: Any) -> str:
    candidate = _text(value).strip().lower()
    return candidate if _EMAIL_PATTERN.match(candidate) else ""


def url(value: Any) -> str:
    candidate = _text(value).strip()
    if candidate.startswith(("http://", "https://", "/")):
        return candidate.replace(" ", "%20")
    return ""


def none_if_empty(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


DEFAULT_SANITIZERS: dict[str, Sanitizer] = {
    "trim": trim,
    "lower": lower,
    "upper": upper,
    "title_case": title_case,
    "collapse_whitespace": collapse_whitespace,
    "strip_tags": strip_tags,
    "slugify": slugify,
    "int": to_int,
    "abs_int": abs_int,
    "float": to_float,
    "bool": to_bool,
    "email": email,
    "url": url,
    "none_if_empty": none_if_empty,
}


class SanitizerRegistry:
    """
    Resolves sanitize names to callables and applies chains of them.
    """

    def __init__(self, sanitizers: Mapping[str, Sanitizer] | None = None) -> None:
        self._sanitizers: dict[str, Sanitizer] = dict(
            DEFAULT_SANITIZERS if sanitizers is None else sanitizers
        )

    def register(self, name: str, func: Sanitizer) -> None:
        key = name.strip()
        if not key:
            raise ValueError("Sanitizer name must not be empty.")
        self._sanitizers[key] = func

    def is_known(self, name: str) -> bool:
        return name in self._sanitizers

    def get(self, name: str) -> Sanitizer:
        try:
            return self._sanitizers[name]
        except KeyError as exc:
            raise KeyError(f"Unknown sanitizer: {name}") from exc

    def names(self) -> list[str]:
        return sorted(self._sanitizers)

    def apply(self, names: Iterable[str], value: Any) -> Any:
        """
        Run ``value`` through each named sanitizer in order.
        """

        for name in names:
            value = self.get(name)(value)
        return value
