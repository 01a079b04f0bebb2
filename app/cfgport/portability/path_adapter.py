"""Cross-platform path adaptation for imported configuration.

Rewrites path-like strings in a configuration tree when a package moves
between platform families:

- home-directory shorthand (``~``) is expanded against the target home;
- Windows separators and drive letters map to the POSIX mounted form
  (``C:\\Users\\X`` <-> ``/c/Users/X``);
- the user-home environment token maps between ``%USERPROFILE%`` and
  ``$HOME``; other ``%VAR%`` tokens map to ``$VAR`` and back.

Values that point at executables are flagged for manual review, because
a translated binary path may not exist on the target system.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass

from cfgport.core.platform import PlatformContext, PlatformType
from cfgport.portability.models import PathKind, PathMapping
from cfgport.portability.tree import ConfigValue, copy_tree, join_key

logger = logging.getLogger(__name__)

# Commands resolved through the target's own lookup path; never rewritten.
COMMON_COMMANDS: frozenset[str] = frozenset({"npx", "node", "python", "python3", "uvx", "deno"})

# Keys of service maps inside MCP-bearing config files.
SERVICE_MAP_KEYS: tuple[str, ...] = ("mcpServers", "mcp_servers")

_ENV_TOKENS: tuple[str, ...] = ("$HOME", "%USERPROFILE%", "%APPDATA%", "%LOCALAPPDATA%")
_CRITICAL_KEY_WORDS: tuple[str, ...] = ("command", "executable", "binary")

_DRIVE_RE = re.compile(r"^([A-Za-z]):(?=[\\/]|$)")
_POSIX_DRIVE_RE = re.compile(r"^/([A-Za-z])(?=/|$)")
_WIN_ENV_RE = re.compile(r"%([A-Za-z_][A-Za-z0-9_]*)%")
_POSIX_ENV_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")
_URL_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


@dataclass(frozen=True, slots=True)
class AdaptationResult:
    """Outcome of adapting a configuration tree.

    Attributes:
        tree: Adapted copy of the input tree.
        mappings: Every path string that was rewritten.
        warnings: Manual-review notes.
    """

    tree: ConfigValue
    mappings: tuple[PathMapping, ...] = ()
    warnings: tuple[str, ...] = ()


# =============================================================================
# Single-string helpers
# =============================================================================


def looks_like_path(value: str) -> bool:
    """Check if a string looks like a filesystem path.

    URLs are not paths even though they contain slashes.
    """
    if not value or _URL_RE.match(value):
        return False
    return (
        "/" in value
        or "\\" in value
        or value.startswith("~")
        or _DRIVE_RE.match(value) is not None
        or any(token in value for token in _ENV_TOKENS)
    )


def classify_path(value: str) -> PathKind:
    """Determine the kind of a path string."""
    if "$" in value or "%" in value:
        return PathKind.ENV_VAR
    if value.startswith("/") or _DRIVE_RE.match(value):
        return PathKind.ABSOLUTE
    if "/" in value or "\\" in value:
        return PathKind.RELATIVE
    return PathKind.MIXED


def is_absolute_path(value: str) -> bool:
    """Whether a path string is absolute on either family or home-anchored."""
    return (
        value.startswith("/")
        or _DRIVE_RE.match(value) is not None
        or value.startswith("~")
        or value.startswith("$HOME")
        or "%USERPROFILE%" in value
    )


def expand_home(value: str, context: PlatformContext) -> str:
    """Expand a leading ``~`` against the context's home directory."""
    if value == "~":
        return context.home
    if value.startswith(("~/", "~\\")):
        return context.home.rstrip("/\\") + value[1:]
    return value


def to_posix_path(value: str) -> str:
    """Translate a Windows path string to POSIX notation.

    ``C:\\tools\\node.exe`` becomes ``/c/tools/node.exe`` and
    ``%USERPROFILE%\\x`` becomes ``$HOME/x``.
    """
    converted = value.replace("\\", "/")
    converted = _DRIVE_RE.sub(lambda m: f"/{m.group(1).lower()}", converted)

    def _env(match: re.Match[str]) -> str:
        name = match.group(1)
        return "$HOME" if name.upper() == "USERPROFILE" else f"${name}"

    return _WIN_ENV_RE.sub(_env, converted)


def to_windows_path(value: str) -> str:
    """Translate a POSIX path string to Windows notation.

    ``/c/tools/node.exe`` becomes ``C:\\tools\\node.exe`` and ``$HOME/x``
    becomes ``%USERPROFILE%\\x``.
    """
    converted = _POSIX_DRIVE_RE.sub(lambda m: f"{m.group(1).upper()}:", value)
    converted = converted.replace("/", "\\")

    def _env(match: re.Match[str]) -> str:
        name = match.group(1)
        return "%USERPROFILE%" if name == "HOME" else f"%{name}%"

    return _POSIX_ENV_RE.sub(_env, converted)


def adapt_path(
    value: str,
    source: PlatformType,
    target: PlatformType,
    context: PlatformContext,
) -> str:
    """Adapt one path string from the source to the target platform.

    Home shorthand is expanded first, then separator, drive-letter and
    environment-token conventions are translated between families.
    """
    if source is target:
        return value

    adapted = expand_home(value, context)
    if source.is_windows and not target.is_windows:
        adapted = to_posix_path(adapted)
    elif not source.is_windows and target.is_windows:
        adapted = to_windows_path(adapted)
    return adapted


def _is_critical_key(key: str) -> bool:
    lowered = key.lower()
    return any(word in lowered for word in _CRITICAL_KEY_WORDS)


def _mapping_for(original: str, adapted: str, location: str, key: str) -> PathMapping:
    kind = classify_path(original)
    warning: str | None = None
    if kind is PathKind.MIXED:
        warning = (
            f"Complex path detected at {location}: {original!r} -> {adapted!r}. "
            "Please verify manually."
        )
    elif _is_critical_key(key):
        warning = (
            f"Executable path adapted at {location}: {original!r} -> {adapted!r}. "
            "Please verify it exists."
        )
    return PathMapping(
        original=original,
        adapted=adapted,
        kind=kind,
        location=location,
        success=True,
        warning=warning,
    )


# =============================================================================
# Tree adaptation
# =============================================================================


class _Adapter:
    """Accumulates mappings while rewriting one tree."""

    def __init__(
        self, source: PlatformType, target: PlatformType, context: PlatformContext
    ) -> None:
        self.source = source
        self.target = target
        self.context = context
        self.mappings: list[PathMapping] = []

    def value(self, value: str, location: str, key: str) -> str:
        if not looks_like_path(value):
            return value
        adapted = adapt_path(value, self.source, self.target, self.context)
        if adapted != value:
            self.mappings.append(_mapping_for(value, adapted, location, key))
        return adapted

    def walk(self, node: ConfigValue, location: str = "", key: str = "") -> ConfigValue:
        match node:
            case str():
                return self.value(node, location, key)
            case dict():
                return {k: self.walk(v, join_key(location, k), k) for k, v in node.items()}
            case list():
                return [self.walk(v, join_key(location, i), key) for i, v in enumerate(node)]
            case _:
                return node

    def service(self, name: str, definition: ConfigValue, location: str) -> ConfigValue:
        if not isinstance(definition, dict):
            return copy_tree(definition)

        adapted: dict[str, ConfigValue] = {}
        for key, value in definition.items():
            where = join_key(location, key)
            match key, value:
                case "command", str():
                    adapted[key] = self.command(name, value, where)
                case "args", list():
                    adapted[key] = [
                        self.value(arg, join_key(where, i), key) if isinstance(arg, str) else arg
                        for i, arg in enumerate(value)
                    ]
                case "env", dict():
                    adapted[key] = {
                        env_key: self.value(env_value, join_key(where, env_key), env_key)
                        if isinstance(env_value, str)
                        else copy_tree(env_value)
                        for env_key, env_value in value.items()
                    }
                case "cwd", str():
                    adapted[key] = self.value(value, where, key)
                case _:
                    adapted[key] = copy_tree(value)
        return adapted

    def command(self, name: str, command: str, location: str) -> str:
        if command in COMMON_COMMANDS or not looks_like_path(command):
            return command

        adapted = adapt_path(command, self.source, self.target, self.context)
        if adapted == command:
            return command

        if is_absolute_path(command):
            warning = (
                f"[{name}] Command path adapted: {command!r} -> {adapted!r}. "
                "Please verify it exists."
            )
        else:
            warning = (
                f"[{name}] Relative command path adapted: {command!r} -> {adapted!r}. "
                "Ensure the working directory is correct."
            )
        self.mappings.append(
            PathMapping(
                original=command,
                adapted=adapted,
                kind=classify_path(command),
                location=location,
                success=True,
                warning=warning,
            )
        )
        return adapted

    def result(self, tree: ConfigValue) -> AdaptationResult:
        warnings = tuple(m.warning for m in self.mappings if m.warning)
        for warning in warnings:
            logger.warning("%s", warning)
        return AdaptationResult(tree=tree, mappings=tuple(self.mappings), warnings=warnings)


def adapt(
    tree: ConfigValue,
    source: PlatformType,
    target: PlatformType,
    context: PlatformContext,
) -> AdaptationResult:
    """Adapt every path-like string in a configuration tree.

    When source and target are the same platform the result is an
    identity copy with zero mappings; no string is inspected.

    Args:
        tree: Parsed configuration.
        source: Platform the package was created on.
        target: Platform being imported into.
        context: Target platform context (home directory).

    Returns:
        AdaptationResult with the adapted copy, mappings and warnings.
    """
    if source is target:
        return AdaptationResult(tree=copy_tree(tree))

    adapter = _Adapter(source, target, context)
    return adapter.result(adapter.walk(tree))


def adapt_service_definitions(
    services: Mapping[str, ConfigValue],
    source: PlatformType,
    target: PlatformType,
    context: PlatformContext,
    location: str = "",
) -> AdaptationResult:
    """Adapt a map of named MCP service definitions.

    Each service's ``command``, ``args``, ``env`` values and ``cwd`` are
    adapted. Allow-listed short commands (``npx``, ``node``, ...) are never
    rewritten because they resolve through the target's lookup path.

    Args:
        services: Mapping of service name to definition.
        source: Platform the package was created on.
        target: Platform being imported into.
        context: Target platform context.
        location: Dotted location of the map, for mapping reports.

    Returns:
        AdaptationResult whose tree is the adapted service map.
    """
    if source is target:
        return AdaptationResult(tree=copy_tree(dict(services)))

    adapter = _Adapter(source, target, context)
    adapted = {
        name: adapter.service(name, definition, join_key(location, name))
        for name, definition in services.items()
    }
    return adapter.result(adapted)


def adapt_config(
    tree: ConfigValue,
    source: PlatformType,
    target: PlatformType,
    context: PlatformContext,
) -> AdaptationResult:
    """Adapt a whole config file, giving embedded service maps special care.

    Service maps under ``mcpServers`` / ``mcp_servers`` go through
    :func:`adapt_service_definitions`; every other key goes through
    :func:`adapt`.
    """
    if source is target:
        return AdaptationResult(tree=copy_tree(tree))
    if not isinstance(tree, dict):
        return adapt(tree, source, target, context)

    adapter = _Adapter(source, target, context)
    adapted: dict[str, ConfigValue] = {}
    for key, value in tree.items():
        if key in SERVICE_MAP_KEYS and isinstance(value, dict):
            adapted[key] = {
                name: adapter.service(name, definition, join_key(key, name))
                for name, definition in value.items()
            }
        else:
            adapted[key] = adapter.walk(value, key, key)
    return adapter.result(adapted)
