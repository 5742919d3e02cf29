"""Parser for semicolon-separated field annotations.

An annotation string such as ``"required;!sortable;min=3;label=Full name"``
is a sequence of tokens separated by ``;``.  Each token is one of:

- a flag (``searchable``) or a negated flag (``!searchable``)
- a ``key=value`` option, split on the first ``=`` only

Whitespace around tokens is trimmed and empty tokens are dropped.  Token
order is preserved so that, for flags, the last occurrence wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


@dataclass(frozen=True, slots=True)
class Token:
    name: str
    value: str | None = None
    negated: bool = False

    @property
    def is_flag(self) -> bool:
        return self.value is None


def _parse_token(raw: str) -> Token | None:
    if "=" in raw:
        key, _, value = raw.partition("=")
        key = key.strip()
        return Token(name=key, value=value.strip()) if key else None
    if raw.startswith("!"):
        name = raw[1:].strip()
        return Token(name=name, negated=True) if name else None
    return Token(name=raw)


def parse_annotation(raw: str | None) -> list[Token]:
    """Split an annotation string into ordered tokens."""
    if not raw:
        return []
    tokens: list[Token] = []
    for part in raw.split(";"):
        part = part.strip()
        if not part:
            continue
        token = _parse_token(part)
        if token is not None:
            tokens.append(token)
    return tokens


def resolve_flags(tokens: Iterable[Token], defaults: Mapping[str, bool]) -> dict[str, bool]:
    """Apply flag tokens over *defaults* in order; unknown flags are ignored."""
    flags = dict(defaults)
    for token in tokens:
        if token.is_flag and token.name in flags:
            flags[token.name] = not token.negated
    return flags


def options(tokens: Iterable[Token]) -> dict[str, str]:
    """Ordered ``key -> value`` map of the ``key=value`` tokens (last wins)."""
    return {t.name: t.value for t in tokens if t.value is not None}


def flag_names(tokens: Iterable[Token]) -> set[str]:
    """Names of the flags that end up set (after last-wins resolution)."""
    state: dict[str, bool] = {}
    for token in tokens:
        if token.is_flag:
            state[token.name] = not token.negated
    return {name for name, on in state.items() if on}
