"""Query string encoding for request dataclasses.

Request types declare their query parameters as dataclass fields. Per-field
rules (omission, value transforms, exclusion) live in the field metadata
produced by :func:`query_param`, and fields are emitted in declaration order
because some providers are strict about parameter order.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import parse_qsl, quote

from pydantic import SecretStr

_METADATA_KEY = "query_param"
_ALPHANUMERIC = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
)


@dataclass(frozen=True)
class QueryParam:
    """Encoding rules for a single query parameter."""

    skip_if: Callable[[Any], bool] | None = None
    proxy: Callable[[Any], str] | None = None
    exclude: bool = False


def query_param(
    skip_if: Callable[[Any], bool] | None = None,
    proxy: Callable[[Any], str] | None = None,
    exclude: bool = False,
) -> dict[str, QueryParam]:
    """Build dataclass field metadata for a query parameter.

    Args:
        skip_if: Omit the parameter when this returns True for the value
        proxy: Transform the value into its final, already encoded text
        exclude: Never emit the field (endpoint URLs and the like)

    Returns:
        Metadata mapping for ``dataclasses.field(metadata=...)``
    """
    return {_METADATA_KEY: QueryParam(skip_if=skip_if, proxy=proxy, exclude=exclude)}


def percent_encode(text: str) -> str:
    """Percent-encode every byte that is not an ASCII letter or digit."""
    return "".join(
        chr(byte) if chr(byte) in _ALPHANUMERIC else f"%{byte:02X}"
        for byte in text.encode("utf-8")
    )


def stringify(value: Any) -> str:
    """Render a field value as plain text.

    Secrets are unwrapped, enum members render their value and sequences are
    joined with single spaces.
    """
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return stringify(value.value)
    if isinstance(value, (list, tuple)):
        return " ".join(stringify(item) for item in value)
    return str(value)


def decode_query(query: str) -> dict[str, str]:
    """Decode a form-encoded query string into a flat mapping.

    ``+`` decodes to a space, blank values are kept, and the first occurrence
    of a repeated key wins.
    """
    params: dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        params.setdefault(key, value)
    return params


class QueryParams:
    """Mixin turning a dataclass into an ordered query string."""

    def _emitted_fields(self) -> list[tuple[str, Any, QueryParam]]:
        emitted = []
        for field in dataclasses.fields(self):
            rules = field.metadata.get(_METADATA_KEY, QueryParam())
            if rules.exclude:
                continue
            value = getattr(self, field.name)
            if rules.skip_if is not None and rules.skip_if(value):
                continue
            emitted.append((field.name, value, rules))
        return emitted

    def to_query_string(self) -> str:
        """Encode the emitted fields as ``name=value`` pairs joined by ``&``."""
        pairs = []
        for name, value, rules in self._emitted_fields():
            if rules.proxy is not None:
                text = rules.proxy(value)
            else:
                text = quote(stringify(value), safe=":/")
            pairs.append(f"{name}={text}")
        return "&".join(pairs)

    def to_params(self) -> dict[str, str]:
        """Return the emitted fields as raw text values, in emission order.

        Suitable for HTTP clients that apply their own encoding.
        """
        return {
            name: stringify(value) for name, value, _ in self._emitted_fields()
        }

    def __str__(self) -> str:
        return self.to_query_string()
