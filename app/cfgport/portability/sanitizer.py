"""Sensitive data sanitization for exported configuration.

Structured config (JSON) is sanitized through a fixed set of declarative
field paths. Flat key=value text (TOML, dotenv style) is sanitized by
matching recognized key names; that path is best-effort and will not
catch every naming convention. Parsed TOML trees get the same key-name
rules applied at any depth.

Only files matching :data:`CONFIG_FILE_PATTERNS` are sanitized. Other
files (Markdown workflows, hook scripts) pass through untouched.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

from cfgport.portability.tree import ConfigValue, FieldPath, copy_tree

logger = logging.getLogger(__name__)

API_KEY_PLACEHOLDER = "***REDACTED_API_KEY***"
AUTH_TOKEN_PLACEHOLDER = "***REDACTED_AUTH_TOKEN***"

PLACEHOLDER_LABELS: dict[str, str] = {
    API_KEY_PLACEHOLDER: "API key",
    AUTH_TOKEN_PLACEHOLDER: "Auth token",
}


@dataclass(frozen=True, slots=True)
class SensitiveField:
    """A credential-bearing location and the placeholder that replaces it.

    Attributes:
        path: Field path into the config tree.
        placeholder: Redaction marker substituted for the value.
    """

    path: FieldPath
    placeholder: str

    @classmethod
    def of(cls, expression: str, placeholder: str) -> SensitiveField:
        """Build a rule from a dotted path expression."""
        return cls(FieldPath.parse(expression), placeholder)


# Versioned with the engine; not user-configurable.
SENSITIVE_FIELDS: tuple[SensitiveField, ...] = (
    SensitiveField.of("env.ANTHROPIC_API_KEY", API_KEY_PLACEHOLDER),
    SensitiveField.of("env.ANTHROPIC_AUTH_TOKEN", AUTH_TOKEN_PLACEHOLDER),
    SensitiveField.of("apiKey", API_KEY_PLACEHOLDER),
    SensitiveField.of("APIKEY", API_KEY_PLACEHOLDER),
    SensitiveField.of("OPENAI_API_KEY", API_KEY_PLACEHOLDER),
    SensitiveField.of("profiles.*.apiKey", API_KEY_PLACEHOLDER),
    SensitiveField.of("tokens.*", AUTH_TOKEN_PLACEHOLDER),
)

# File name patterns of config files that may carry credentials.
CONFIG_FILE_PATTERNS: tuple[str, ...] = (
    "*settings.json",
    "*config.toml",
    "*auth.json",
    "*profiles.toml",
    "*mcp-settings.json",
    "*mcp.json",
    "*.claude.json",
)

_API_KEY_NAMES = r"api[_-]?key|anthropic_api_key|openai_api_key"
_AUTH_TOKEN_NAMES = r"auth[_-]?token|anthropic_auth_token|access[_-]?token|refresh[_-]?token"

_KEY_NAME_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(_API_KEY_NAMES, re.IGNORECASE), API_KEY_PLACEHOLDER),
    (re.compile(_AUTH_TOKEN_NAMES, re.IGNORECASE), AUTH_TOKEN_PLACEHOLDER),
)

# Assignments start a line or follow "{" / "," so quoted JSON keys in
# unparseable files are caught as well as TOML and dotenv lines.
_TEXT_RULES: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (
        re.compile(
            rf"""(?P<lead>(?:^|[{{,])\s*(?:export\s+)?(?P<kq>["']?)(?:{names})(?P=kq)\s*[=:]\s*)"""
            r"""(?:(?P<q>["'])(?P<quoted>[^"'\n]*)(?P=q)|(?P<bare>[^\s"'#,}]+))""",
            re.IGNORECASE | re.MULTILINE,
        ),
        placeholder,
    )
    for names, placeholder in (
        (_API_KEY_NAMES, API_KEY_PLACEHOLDER),
        (_AUTH_TOKEN_NAMES, AUTH_TOKEN_PLACEHOLDER),
    )
)


def _is_secret(value: ConfigValue, placeholder: str) -> bool:
    return isinstance(value, str) and value != "" and value != placeholder


def sanitize(tree: ConfigValue) -> ConfigValue:
    """Return a deep copy of a tree with every sensitive value redacted.

    The input is never mutated. Sanitizing an already-sanitized tree is a
    no-op.

    Args:
        tree: Parsed configuration.

    Returns:
        New tree with every rule-matched non-empty string replaced by the
        rule's placeholder.
    """
    sanitized = copy_tree(tree)
    for rule in SENSITIVE_FIELDS:
        for container, key in rule.path.matches(sanitized):
            if _is_secret(container[key], rule.placeholder):  # type: ignore[index]
                container[key] = rule.placeholder  # type: ignore[index]
    return sanitized


def detect(tree: ConfigValue) -> bool:
    """Whether any rule-matched value holds a real (unredacted) secret."""
    return any(
        _is_secret(container[key], rule.placeholder)  # type: ignore[index]
        for rule in SENSITIVE_FIELDS
        for container, key in rule.path.matches(tree)
    )


def key_placeholder(key: str) -> str | None:
    """Get the placeholder for a key named like a credential, if any."""
    for pattern, placeholder in _KEY_NAME_RULES:
        if pattern.fullmatch(key):
            return placeholder
    return None


def _key_matches(
    node: ConfigValue,
) -> Iterator[tuple[dict[str, ConfigValue], str, str]]:
    match node:
        case dict():
            for key, value in node.items():
                placeholder = key_placeholder(key)
                if placeholder is not None and isinstance(value, str):
                    yield node, key, placeholder
                else:
                    yield from _key_matches(value)
        case list():
            for item in node:
                yield from _key_matches(item)
        case _:
            return


def sanitize_keys(tree: ConfigValue) -> ConfigValue:
    """Return a copy of a tree with credential-named string values redacted.

    Matches keys by name at any depth (``api_key``, ``access_token`` and
    the other aliases recognized by :func:`sanitize_text`). Used for TOML
    trees, whose credentials follow no fixed layout.
    """
    sanitized = copy_tree(tree)
    for container, key, placeholder in list(_key_matches(sanitized)):
        if _is_secret(container[key], placeholder):
            container[key] = placeholder
    return sanitized


def _redactable(
    tree: ConfigValue,
) -> Iterator[tuple[dict[str, ConfigValue] | list[ConfigValue], str | int, str]]:
    for rule in SENSITIVE_FIELDS:
        for container, key in rule.path.matches(tree):
            yield container, key, rule.placeholder
    yield from _key_matches(tree)


def carry_over_secrets(incoming: ConfigValue, existing: ConfigValue) -> ConfigValue:
    """Keep existing credentials where the incoming tree only has placeholders.

    Importing a sanitized package must never overwrite a live credential
    with a redaction marker.

    Args:
        incoming: Tree from the package.
        existing: Tree currently on disk.

    Returns:
        Copy of ``incoming`` with placeholders replaced by existing secrets
        found at the same location.
    """
    result = copy_tree(incoming)
    for container, key, placeholder in list(_redactable(result)):
        if container[key] != placeholder:  # type: ignore[index]
            continue
        current = _lookup(existing, _location_of(result, container, key))
        if _is_secret(current, placeholder):
            container[key] = current  # type: ignore[index]
    return result


# A step from a container to a child: mapping key, sequence index, or the
# ``name`` of a table inside a sequence (profiles are matched by name).
_Step = str | int | tuple[str, str]


def _step_for(index: int, child: ConfigValue) -> _Step:
    if isinstance(child, dict) and isinstance(child.get("name"), str):
        return ("name", child["name"])  # type: ignore[return-value]
    return index


def _location_of(
    root: ConfigValue, container: object, key: str | int
) -> tuple[_Step, ...] | None:
    """Find the steps leading to ``container[key]`` inside ``root``."""
    if root is container:
        if isinstance(root, list) and isinstance(key, int):
            return (_step_for(key, root[key]),)
        return (key,)
    match root:
        case dict():
            children: list[tuple[_Step, ConfigValue]] = list(root.items())
        case list():
            children = [(_step_for(i, child), child) for i, child in enumerate(root)]
        case _:
            return None
    for step, child in children:
        found = _location_of(child, container, key)
        if found is not None:
            return (step, *found)
    return None


def _lookup(tree: ConfigValue, steps: tuple[_Step, ...] | None) -> ConfigValue:
    if steps is None:
        return None
    node = tree
    for step in steps:
        match node, step:
            case dict(), str() if step in node:
                node = node[step]
            case list(), int() if step < len(node):
                node = node[step]
            case list(), (_, name):
                node = next(
                    (item for item in node if isinstance(item, dict) and item.get("name") == name),
                    None,
                )
            case _:
                return None
    return node


def sanitize_text(content: str) -> tuple[str, bool]:
    """Redact credential assignments in flat key=value text.

    Best-effort: recognizes common aliases of "API key" and "auth token"
    (case-insensitive, quoted or bare values). Other naming conventions
    pass through unchanged.

    Returns:
        Tuple of (sanitized text, whether anything was redacted).
    """
    redacted = False
    sanitized = content

    for pattern, placeholder in _TEXT_RULES:

        def _replace(match: re.Match[str], placeholder: str = placeholder) -> str:
            nonlocal redacted
            value = match.group("quoted") if match.group("q") else match.group("bare")
            if not value or value == placeholder:
                return match.group(0)
            redacted = True
            quote = match.group("q") or '"'
            return f"{match.group('lead')}{quote}{placeholder}{quote}"

        sanitized = pattern.sub(_replace, sanitized)

    return sanitized, redacted


def detect_text(content: str) -> bool:
    """Whether flat key=value text holds a recognizable unredacted secret."""
    return sanitize_text(content)[1]


def should_sanitize(path: str) -> bool:
    """Check if a file should be sanitized based on its name.

    Args:
        path: File path (archive-internal or absolute).

    Returns:
        True if the file name matches a known config file pattern.
    """
    name = path.replace("\\", "/").rsplit("/", 1)[-1]
    return any(fnmatch.fnmatch(name, pattern) for pattern in CONFIG_FILE_PATTERNS)


def sanitize_content(content: str, path: str) -> tuple[str, bool]:
    """Sanitize the content of one config file.

    JSON content is parsed and sanitized structurally; when nothing needs
    redacting the original text is returned byte-for-byte. Anything that
    is not JSON goes through :func:`sanitize_text`.

    Args:
        content: File content.
        path: File path, used for diagnostics only.

    Returns:
        Tuple of (sanitized content, whether anything was redacted).
    """
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        return sanitize_text(content)

    if not detect(parsed):
        return content, False

    logger.debug("Redacting credentials in %s", path)
    return json.dumps(sanitize(parsed), indent=2, ensure_ascii=False) + "\n", True


def find_placeholders(content: str) -> list[str]:
    """List the kinds of redaction markers present in a text.

    Used on import to tell the user which credentials must be re-entered.
    """
    return [label for marker, label in PLACEHOLDER_LABELS.items() if marker in content]
