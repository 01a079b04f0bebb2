"""Conflict-aware merging of existing and incoming configuration.

Three strategies are supported:

- ``replace``: the incoming tree wins entirely; no conflicts are detected.
- ``skip-existing``: existing values win wherever both sides define one;
  incoming values only fill absent keys. No conflicts are reported.
- ``merge``: nested mappings are merged recursively; incoming wins on
  differing values and each difference is reported once.

Conflicts are coarse: one per differing key, or one per differing named
service or profile, even when the nested values differ in several places.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from cfgport.portability.models import (
    ConfigConflict,
    ConflictChoice,
    FileCategory,
    MergeStrategy,
    Resolution,
)
from cfgport.portability.path_adapter import SERVICE_MAP_KEYS
from cfgport.portability.tree import ConfigValue, copy_tree, join_key

logger = logging.getLogger(__name__)

CURRENT_PROFILE_KEY = "current_profile"
PROFILES_KEY = "profiles"

# Conflict categories that affect how a tool starts or authenticates.
CRITICAL_CATEGORIES: frozenset[FileCategory] = frozenset({FileCategory.MCP, FileCategory.PROFILES})


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Outcome of merging two configuration trees.

    Attributes:
        merged: New merged tree.
        conflicts: Differences found (empty for replace and skip-existing).
        warnings: Non-fatal notes, e.g. a retained default profile.
    """

    merged: ConfigValue
    conflicts: tuple[ConfigConflict, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ConflictSummary:
    """Counts of conflicts by category, with the critical ones listed."""

    total: int
    by_category: dict[FileCategory, int]
    critical: tuple[ConfigConflict, ...]


# =============================================================================
# Generic tree merging
# =============================================================================


def _union(existing: list[ConfigValue], incoming: list[ConfigValue]) -> list[ConfigValue]:
    merged = [copy_tree(item) for item in existing]
    for item in incoming:
        if item not in merged:
            merged.append(copy_tree(item))
    return merged


def _merge_value(
    existing: ConfigValue,
    incoming: ConfigValue,
    location: str,
    category: FileCategory,
    conflicts: list[ConfigConflict],
) -> ConfigValue:
    match existing, incoming:
        case dict(), dict():
            merged = {key: copy_tree(value) for key, value in existing.items()}
            for key, value in incoming.items():
                if key in merged:
                    merged[key] = _merge_value(
                        merged[key], value, join_key(location, key), category, conflicts
                    )
                else:
                    merged[key] = copy_tree(value)
            return merged
        case list(), list():
            if existing == incoming:
                return copy_tree(existing)
            conflicts.append(
                ConfigConflict(
                    category=category,
                    name=location,
                    existing=copy_tree(existing),
                    incoming=copy_tree(incoming),
                    resolution=Resolution.NEEDS_MANUAL_REVIEW,
                )
            )
            return _union(existing, incoming)
        case _:
            if existing != incoming:
                conflicts.append(
                    ConfigConflict(
                        category=category,
                        name=location,
                        existing=copy_tree(existing),
                        incoming=copy_tree(incoming),
                    )
                )
            return copy_tree(incoming)


def _fill_absent(existing: ConfigValue, incoming: ConfigValue) -> ConfigValue:
    if not (isinstance(existing, dict) and isinstance(incoming, dict)):
        return copy_tree(existing)
    merged = {key: copy_tree(value) for key, value in existing.items()}
    for key, value in incoming.items():
        if key not in merged:
            merged[key] = copy_tree(value)
        else:
            merged[key] = _fill_absent(merged[key], value)
    return merged


def merge_settings(
    existing: ConfigValue,
    incoming: ConfigValue,
    strategy: MergeStrategy,
    category: FileCategory = FileCategory.SETTINGS,
) -> MergeResult:
    """Merge two configuration trees.

    Args:
        existing: Tree currently on disk (None when there is none).
        incoming: Tree from the package.
        strategy: Merge strategy.
        category: Category recorded on detected conflicts.

    Returns:
        MergeResult with a new tree; neither input is mutated.
    """
    if existing is None or strategy is MergeStrategy.REPLACE:
        return MergeResult(merged=copy_tree(incoming))
    if incoming is None:
        return MergeResult(merged=copy_tree(existing))

    if strategy is MergeStrategy.SKIP_EXISTING:
        return MergeResult(merged=_fill_absent(existing, incoming))

    conflicts: list[ConfigConflict] = []
    merged = _merge_value(existing, incoming, "", category, conflicts)
    return MergeResult(merged=merged, conflicts=tuple(conflicts))


# =============================================================================
# Named collections: MCP services and profiles
# =============================================================================


def merge_services(
    existing: Mapping[str, ConfigValue] | None,
    incoming: Mapping[str, ConfigValue],
    strategy: MergeStrategy,
) -> MergeResult:
    """Merge MCP service maps keyed by service name.

    Under ``merge`` each service defined differently on both sides is one
    conflict, and the incoming definition is deep-merged over the existing
    one.
    """
    if not existing or strategy is MergeStrategy.REPLACE:
        return MergeResult(merged=copy_tree(dict(incoming)))

    merged = {name: copy_tree(definition) for name, definition in existing.items()}
    conflicts: list[ConfigConflict] = []

    for name, definition in incoming.items():
        if name not in merged:
            merged[name] = copy_tree(definition)
            continue
        if strategy is MergeStrategy.SKIP_EXISTING or merged[name] == definition:
            continue
        conflicts.append(
            ConfigConflict(
                category=FileCategory.MCP,
                name=name,
                existing=copy_tree(merged[name]),
                incoming=copy_tree(definition),
            )
        )
        merged[name] = _merge_value(merged[name], definition, name, FileCategory.MCP, [])

    return MergeResult(merged=merged, conflicts=tuple(conflicts))


def _profile_key(index: int, item: ConfigValue) -> str:
    if isinstance(item, dict) and isinstance(item.get("name"), str):
        return item["name"]  # type: ignore[return-value]
    return f"#{index}"


def _profiles_of(tree: ConfigValue) -> tuple[dict[str, ConfigValue], bool]:
    """Index a tree's profiles by name.

    Returns:
        Tuple of (profiles by name, whether they are stored as a list).
    """
    if not isinstance(tree, dict):
        return {}, False
    match tree.get(PROFILES_KEY):
        case list() as items:
            return {_profile_key(i, item): item for i, item in enumerate(items)}, True
        case dict() as table:
            return dict(table), False
        case _:
            return {}, False


def _as_list(profiles: dict[str, ConfigValue]) -> list[ConfigValue]:
    """Convert named profiles to list form, keeping each name in its table."""
    items: list[ConfigValue] = []
    for name, profile in profiles.items():
        if isinstance(profile, dict) and "name" not in profile and not name.startswith("#"):
            profile = {"name": name, **profile}
        items.append(profile)
    return items


def _default_of(tree: ConfigValue) -> str | None:
    if isinstance(tree, dict) and isinstance(tree.get(CURRENT_PROFILE_KEY), str):
        return tree[CURRENT_PROFILE_KEY]  # type: ignore[return-value]
    return None


def merge_profiles(
    existing: ConfigValue,
    incoming: ConfigValue,
    strategy: MergeStrategy,
) -> MergeResult:
    """Merge credential profile files.

    Profiles are matched by name, whether stored as a list of tables with
    a ``name`` key or as a mapping of name to table. The existing default
    profile (``current_profile``) is never dropped, and a default that
    points to a missing profile falls back to the existing default.

    Args:
        existing: Profile tree currently on disk.
        incoming: Profile tree from the package.
        strategy: Merge strategy.

    Returns:
        MergeResult with one conflict per differing profile under ``merge``.
    """
    if not isinstance(existing, dict) or not isinstance(incoming, dict):
        return merge_settings(existing, incoming, strategy, FileCategory.PROFILES)

    existing_profiles, existing_is_list = _profiles_of(existing)
    incoming_profiles, incoming_is_list = _profiles_of(incoming)
    existing_default = _default_of(existing)
    incoming_default = _default_of(incoming)

    conflicts: list[ConfigConflict] = []
    warnings: list[str] = []

    # Everything except the profile collection and the default pointer.
    rest = merge_settings(
        {k: v for k, v in existing.items() if k not in (PROFILES_KEY, CURRENT_PROFILE_KEY)},
        {k: v for k, v in incoming.items() if k not in (PROFILES_KEY, CURRENT_PROFILE_KEY)},
        strategy,
        FileCategory.PROFILES,
    )
    conflicts.extend(rest.conflicts)

    profiles: dict[str, ConfigValue]
    if strategy is MergeStrategy.REPLACE:
        profiles = {name: copy_tree(p) for name, p in incoming_profiles.items()}
        if existing_default in existing_profiles and existing_default not in profiles:
            profiles[existing_default] = copy_tree(existing_profiles[existing_default])
            warnings.append(
                f"Kept existing default profile '{existing_default}', "
                "which the incoming profiles do not define"
            )
    else:
        profiles = {name: copy_tree(p) for name, p in existing_profiles.items()}
        for name, profile in incoming_profiles.items():
            if name not in profiles:
                profiles[name] = copy_tree(profile)
            elif strategy is MergeStrategy.MERGE and profiles[name] != profile:
                conflicts.append(
                    ConfigConflict(
                        category=FileCategory.PROFILES,
                        name=name,
                        existing=copy_tree(profiles[name]),
                        incoming=copy_tree(profile),
                    )
                )
                profiles[name] = _merge_value(
                    profiles[name], profile, name, FileCategory.PROFILES, []
                )

    if strategy is MergeStrategy.SKIP_EXISTING:
        default = existing_default or incoming_default
    else:
        default = incoming_default or existing_default
        if (
            strategy is MergeStrategy.MERGE
            and existing_default is not None
            and incoming_default is not None
            and existing_default != incoming_default
        ):
            conflicts.append(
                ConfigConflict(
                    category=FileCategory.PROFILES,
                    name=CURRENT_PROFILE_KEY,
                    existing=existing_default,
                    incoming=incoming_default,
                )
            )

    if default is not None and default not in profiles:
        fallback = existing_default if existing_default in profiles else None
        warnings.append(
            f"Default profile '{default}' does not exist; "
            + (f"falling back to '{fallback}'" if fallback else "clearing the default")
        )
        default = fallback

    merged = rest.merged if isinstance(rest.merged, dict) else {}
    if PROFILES_KEY in existing or PROFILES_KEY in incoming:
        as_list = existing_is_list if PROFILES_KEY in existing else incoming_is_list
        merged[PROFILES_KEY] = _as_list(profiles) if as_list else profiles
    if default is not None:
        merged[CURRENT_PROFILE_KEY] = default

    for warning in warnings:
        logger.warning("%s", warning)
    return MergeResult(merged=merged, conflicts=tuple(conflicts), warnings=tuple(warnings))


# =============================================================================
# Dispatch and reporting
# =============================================================================


def merge_config(
    existing: ConfigValue,
    incoming: ConfigValue,
    strategy: MergeStrategy,
    category: FileCategory,
) -> MergeResult:
    """Merge one config file according to its category.

    Profile files go through :func:`merge_profiles`. Any other file has its
    embedded MCP service maps merged per service and the remaining keys
    merged with :func:`merge_settings`.
    """
    if category is FileCategory.PROFILES:
        return merge_profiles(existing, incoming, strategy)
    if not isinstance(existing, dict) or not isinstance(incoming, dict):
        return merge_settings(existing, incoming, strategy, category)

    service_keys = [
        key
        for key in SERVICE_MAP_KEYS
        if isinstance(existing.get(key), dict) and isinstance(incoming.get(key), dict)
    ]
    base = merge_settings(
        {k: v for k, v in existing.items() if k not in service_keys},
        {k: v for k, v in incoming.items() if k not in service_keys},
        strategy,
        category,
    )
    merged = base.merged if isinstance(base.merged, dict) else {}
    conflicts = list(base.conflicts)

    for key in service_keys:
        services = merge_services(existing[key], incoming[key], strategy)  # type: ignore[arg-type]
        merged[key] = services.merged
        conflicts.extend(services.conflicts)

    return MergeResult(merged=merged, conflicts=tuple(conflicts), warnings=base.warnings)


def summarize_conflicts(conflicts: Iterable[ConfigConflict]) -> ConflictSummary:
    """Count conflicts by category and pick out the critical ones."""
    items = list(conflicts)
    counts = Counter(c.category for c in items)
    return ConflictSummary(
        total=len(items),
        by_category=dict(counts),
        critical=tuple(c for c in items if c.category in CRITICAL_CATEGORIES),
    )


# =============================================================================
# Explicit conflict resolution
# =============================================================================

RENAME_SUFFIX = "_imported"

_Slot = tuple[dict[str, ConfigValue] | list[ConfigValue], str | int]


def _service_slot(tree: dict[str, ConfigValue], name: str) -> _Slot | None:
    for key in SERVICE_MAP_KEYS:
        services = tree.get(key)
        if isinstance(services, dict) and name in services:
            return services, name
    return None


def _profile_slot(tree: dict[str, ConfigValue], name: str) -> _Slot | None:
    match tree.get(PROFILES_KEY):
        case dict() as table if name in table:
            return table, name
        case list() as items:
            for index, item in enumerate(items):
                if _profile_key(index, item) == name:
                    return items, index
    return None


def _dotted_slot(tree: dict[str, ConfigValue], name: str) -> _Slot | None:
    *parents, last = name.split(".")
    node = tree
    for part in parents:
        child = node.setdefault(part, {})
        if not isinstance(child, dict):
            return None
        node = child
    return node, last


def _slot_of(tree: ConfigValue, conflict: ConfigConflict) -> _Slot | None:
    """Find where a conflict's value lives in a merged tree."""
    if not isinstance(tree, dict):
        return None
    slot: _Slot | None = None
    if conflict.category is FileCategory.MCP:
        slot = _service_slot(tree, conflict.name)
    elif conflict.category is FileCategory.PROFILES and conflict.name != CURRENT_PROFILE_KEY:
        slot = _profile_slot(tree, conflict.name)
    return slot or _dotted_slot(tree, conflict.name)


def _chosen_value(conflict: ConfigConflict, choice: ConflictChoice) -> ConfigValue:
    match choice:
        case ConflictChoice.USE_EXISTING | ConflictChoice.RENAME:
            return copy_tree(conflict.existing)
        case ConflictChoice.USE_INCOMING:
            return copy_tree(conflict.incoming)
        case ConflictChoice.MERGE:
            return _merge_value(
                conflict.existing, conflict.incoming, conflict.name, conflict.category, []
            )


def resolve_conflicts(
    tree: ConfigValue,
    conflicts: Iterable[ConfigConflict],
    resolutions: Mapping[str, ConflictChoice],
) -> MergeResult:
    """Apply explicit choices to conflicts found by a merge.

    Conflicts are located by name: MCP services inside their service map,
    profiles by name in either storage form, and anything else as a dotted
    key path (missing parents are created). ``rename`` keeps the existing
    value and stores the incoming one under ``<name>_imported``; a profile
    stored in a list is appended as a copy named ``<name>_imported``.

    Args:
        tree: Merged tree the conflicts were found in.
        conflicts: Conflicts reported for that tree.
        resolutions: Choices keyed by conflict name.

    Returns:
        MergeResult with the resolved tree. Its conflicts are the ones no
        choice was given for; names that cannot be located are warnings.
    """
    resolved = copy_tree(tree)
    unresolved: list[ConfigConflict] = []
    warnings: list[str] = []

    for conflict in conflicts:
        choice = resolutions.get(conflict.name)
        if choice is None:
            unresolved.append(conflict)
            continue
        slot = _slot_of(resolved, conflict)
        if slot is None:
            warnings.append(f"Cannot apply '{choice.value}' to '{conflict.name}': not found")
            continue

        container, key = slot
        container[key] = _chosen_value(conflict, choice)  # type: ignore[index]
        if choice is ConflictChoice.RENAME:
            incoming = copy_tree(conflict.incoming)
            if isinstance(container, list):
                if isinstance(incoming, dict):
                    incoming["name"] = f"{conflict.name}{RENAME_SUFFIX}"
                container.append(incoming)
            else:
                container[f"{key}{RENAME_SUFFIX}"] = incoming
        logger.debug("Resolved conflict %s with %s", conflict.name, choice.value)

    for warning in warnings:
        logger.warning("%s", warning)
    return MergeResult(merged=resolved, conflicts=tuple(unresolved), warnings=tuple(warnings))
