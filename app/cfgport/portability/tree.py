"""Configuration tree value type and field-path evaluation.

A configuration tree is the parsed form of a JSON or TOML config file: a
closed union of scalars, string-keyed mappings, and sequences. Every
engine stage (sanitizer, path adapter, merger) works on these trees and
returns new ones instead of mutating its input.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import TypeAlias

Scalar: TypeAlias = str | int | float | bool | None | datetime | date | time
ConfigValue: TypeAlias = Scalar | dict[str, "ConfigValue"] | list["ConfigValue"]
ConfigTree: TypeAlias = dict[str, ConfigValue]

WILDCARD = "*"


def copy_tree(value: ConfigValue) -> ConfigValue:
    """Deep copy a configuration value.

    Scalars are immutable and returned as is; mappings and sequences are
    rebuilt so the result never aliases the input.
    """
    match value:
        case dict():
            return {key: copy_tree(item) for key, item in value.items()}
        case list():
            return [copy_tree(item) for item in value]
        case _:
            return value


def join_key(prefix: str, key: str | int) -> str:
    """Append a key to a dotted location string."""
    if isinstance(key, int):
        return f"{prefix}[{key}]"
    return f"{prefix}.{key}" if prefix else key


@dataclass(frozen=True, slots=True)
class FieldPath:
    """Declarative path into a configuration tree.

    Segments are separated by dots; a ``*`` segment matches every key of a
    mapping (or every item of a sequence) present at that level.

    Example:
        ``FieldPath.parse("profiles.*.apiKey")`` matches ``apiKey`` in every
        profile, whether ``profiles`` is a mapping or a list of tables.
    """

    segments: tuple[str, ...]

    @classmethod
    def parse(cls, expression: str) -> FieldPath:
        """Parse a dotted path expression."""
        segments = tuple(expression.split("."))
        if not expression or any(not s for s in segments):
            msg = f"Invalid field path: {expression!r}"
            raise ValueError(msg)
        return cls(segments)

    def __str__(self) -> str:
        return ".".join(self.segments)

    def matches(
        self, tree: ConfigValue
    ) -> Iterator[tuple[dict[str, ConfigValue] | list[ConfigValue], str | int]]:
        """Yield ``(container, key)`` for every present value the path reaches.

        Containers are yielded so callers can both read and replace the
        matched value. Only keys present in the tree are yielded.
        """
        yield from _walk(tree, self.segments)


def _walk(
    node: ConfigValue, segments: tuple[str, ...]
) -> Iterator[tuple[dict[str, ConfigValue] | list[ConfigValue], str | int]]:
    head, rest = segments[0], segments[1:]

    keys: list[str | int]
    match node:
        case dict():
            keys = list(node.keys()) if head == WILDCARD else ([head] if head in node else [])
        case list():
            keys = list(range(len(node))) if head == WILDCARD else []
        case _:
            return

    for key in keys:
        if not rest:
            yield node, key
        else:
            child = node[key]  # type: ignore[index]
            yield from _walk(child, rest)
