"""Unit tests for configuration merging."""

import pytest
from cfgport.portability.merger import (
    merge_config,
    merge_profiles,
    merge_services,
    merge_settings,
    resolve_conflicts,
    summarize_conflicts,
)
from cfgport.portability.models import (
    ConfigConflict,
    ConflictChoice,
    FileCategory,
    MergeStrategy,
    Resolution,
)

MERGE = MergeStrategy.MERGE
REPLACE = MergeStrategy.REPLACE
SKIP = MergeStrategy.SKIP_EXISTING


class TestMergeSettings:
    """Tests for merge_settings function."""

    @pytest.mark.parametrize("strategy", list(MergeStrategy))
    def test_no_existing_tree(self, strategy: MergeStrategy) -> None:
        """Without existing config the incoming tree is taken as is."""
        incoming = {"model": "opus"}

        result = merge_settings(None, incoming, strategy)

        assert result.merged == incoming
        assert result.conflicts == ()

    def test_replace_ignores_existing(self) -> None:
        """Replace takes the incoming tree entirely."""
        result = merge_settings({"a": 1, "b": 2}, {"a": 3}, REPLACE)

        assert result.merged == {"a": 3}
        assert result.conflicts == ()

    def test_replace_with_empty_incoming(self) -> None:
        """Replacing with an empty tree empties the file."""
        assert merge_settings({"a": 1}, {}, REPLACE).merged == {}

    def test_merge_keeps_every_key(self) -> None:
        """Keys from both sides are present after a merge."""
        existing = {"a": 1, "nested": {"x": 1, "y": 2}}
        incoming = {"b": 2, "nested": {"y": 3, "z": 4}}

        result = merge_settings(existing, incoming, MERGE)

        assert result.merged == {"a": 1, "b": 2, "nested": {"x": 1, "y": 3, "z": 4}}
        assert [c.name for c in result.conflicts] == ["nested.y"]
        assert result.conflicts[0].existing == 2
        assert result.conflicts[0].incoming == 3
        assert result.conflicts[0].resolution is Resolution.USE_INCOMING

    def test_merge_does_not_mutate_inputs(self) -> None:
        """Neither input is changed."""
        existing = {"nested": {"x": 1}}
        incoming = {"nested": {"y": 2}}

        merge_settings(existing, incoming, MERGE)

        assert existing == {"nested": {"x": 1}}
        assert incoming == {"nested": {"y": 2}}

    def test_merge_lists_union_for_review(self) -> None:
        """Differing lists are unioned and flagged for review."""
        existing = {"permissions": {"allow": ["Bash(git:*)", "Read"]}}
        incoming = {"permissions": {"allow": ["Read", "Write"]}}

        result = merge_settings(existing, incoming, MERGE)

        assert result.merged == {"permissions": {"allow": ["Bash(git:*)", "Read", "Write"]}}
        assert len(result.conflicts) == 1
        assert result.conflicts[0].resolution is Resolution.NEEDS_MANUAL_REVIEW

    def test_equal_values_no_conflict(self) -> None:
        """Identical values are not conflicts."""
        tree = {"a": [1, 2], "b": {"c": "d"}}

        assert merge_settings(tree, tree, MERGE).conflicts == ()

    def test_skip_existing_fills_absent_only(self) -> None:
        """Skip-existing keeps existing values and adds missing keys."""
        existing = {"model": "sonnet", "env": {"DEBUG": "0"}}
        incoming = {"model": "opus", "env": {"DEBUG": "1", "NEW": "x"}, "theme": "dark"}

        result = merge_settings(existing, incoming, SKIP)

        assert result.merged == {
            "model": "sonnet",
            "env": {"DEBUG": "0", "NEW": "x"},
            "theme": "dark",
        }
        assert result.conflicts == ()

    def test_conflict_category(self) -> None:
        """Conflicts carry the category they were detected in."""
        result = merge_settings({"a": 1}, {"a": 2}, MERGE, FileCategory.HOOKS)

        assert result.conflicts[0].category is FileCategory.HOOKS


class TestMergeServices:
    """Tests for merge_services function."""

    def test_one_conflict_per_service(self) -> None:
        """Services differing in several fields give one conflict."""
        existing = {"fs": {"command": "node", "args": ["a"]}, "git": {"command": "git-mcp"}}
        incoming = {"fs": {"command": "bun", "args": ["b"]}, "web": {"command": "npx"}}

        result = merge_services(existing, incoming, MERGE)

        assert set(result.merged) == {"fs", "git", "web"}  # type: ignore[arg-type]
        assert [c.name for c in result.conflicts] == ["fs"]
        assert result.conflicts[0].category is FileCategory.MCP
        assert result.merged["fs"]["command"] == "bun"  # type: ignore[index]

    def test_skip_existing_keeps_services(self) -> None:
        """Existing service definitions win under skip-existing."""
        result = merge_services({"fs": {"command": "node"}}, {"fs": {"command": "bun"}}, SKIP)

        assert result.merged == {"fs": {"command": "node"}}
        assert result.conflicts == ()

    def test_replace(self) -> None:
        """Replace drops services the package does not define."""
        result = merge_services({"fs": {}}, {"web": {}}, REPLACE)

        assert result.merged == {"web": {}}


class TestMergeProfiles:
    """Tests for merge_profiles function."""

    def test_skip_existing_keeps_profiles(self) -> None:
        """Existing profiles stay untouched, new ones are added, no conflicts."""
        existing = {
            "current_profile": "work",
            "profiles": [{"name": "work", "model": "opus"}],
        }
        incoming = {
            "current_profile": "home",
            "profiles": [{"name": "work", "model": "haiku"}, {"name": "home", "model": "sonnet"}],
        }

        result = merge_profiles(existing, incoming, SKIP)

        assert result.merged == {
            "current_profile": "work",
            "profiles": [{"name": "work", "model": "opus"}, {"name": "home", "model": "sonnet"}],
        }
        assert result.conflicts == ()

    def test_merge_reports_profiles_and_default(self) -> None:
        """Each differing profile and a changed default are conflicts."""
        existing = {"current_profile": "a", "profiles": {"a": {"m": 1}, "b": {"m": 1}}}
        incoming = {"current_profile": "b", "profiles": {"a": {"m": 2}, "b": {"m": 1}}}

        result = merge_profiles(existing, incoming, MERGE)

        assert [c.name for c in result.conflicts] == ["a", "current_profile"]
        assert all(c.category is FileCategory.PROFILES for c in result.conflicts)
        assert result.merged == {
            "profiles": {"a": {"m": 2}, "b": {"m": 1}},
            "current_profile": "b",
        }

    def test_replace_retains_existing_default(self) -> None:
        """The active default profile survives a replace."""
        existing = {"current_profile": "work", "profiles": [{"name": "work", "k": 1}]}
        incoming = {"profiles": [{"name": "home", "k": 2}]}

        result = merge_profiles(existing, incoming, REPLACE)

        assert result.merged == {
            "profiles": [{"name": "home", "k": 2}, {"name": "work", "k": 1}],
            "current_profile": "work",
        }
        assert "Kept existing default profile 'work'" in result.warnings[0]

    def test_dangling_default_falls_back(self) -> None:
        """A default naming no profile falls back to the existing default."""
        existing = {"current_profile": "work", "profiles": {"work": {}}}
        incoming = {"current_profile": "ghost", "profiles": {"home": {}}}

        result = merge_profiles(existing, incoming, MERGE)

        assert result.merged["current_profile"] == "work"  # type: ignore[index]
        assert any("falling back to 'work'" in w for w in result.warnings)

    def test_dangling_default_cleared(self) -> None:
        """Without a usable fallback the default is removed."""
        result = merge_profiles({}, {"current_profile": "ghost", "profiles": {}}, MERGE)

        assert "current_profile" not in result.merged  # type: ignore[operator]
        assert "clearing the default" in result.warnings[0]

    def test_other_keys_merged(self) -> None:
        """Keys outside the profile collection merge like settings."""
        result = merge_profiles({"version": 1}, {"version": 2, "profiles": {}}, MERGE)

        assert result.merged == {"version": 2, "profiles": {}}
        assert [c.name for c in result.conflicts] == ["version"]

    def test_named_incoming_into_list_keeps_names(self) -> None:
        """Named incoming profiles merged into list form carry their names."""
        existing = {"current_profile": "work", "profiles": [{"name": "work", "model": "a"}]}
        incoming = {"profiles": {"home": {"model": "b"}}}

        result = merge_profiles(existing, incoming, MERGE)

        assert result.merged["profiles"] == [  # type: ignore[index]
            {"name": "work", "model": "a"},
            {"name": "home", "model": "b"},
        ]
        assert result.merged["current_profile"] == "work"  # type: ignore[index]


class TestMergeConfig:
    """Tests for merge_config dispatch."""

    def test_embedded_service_map(self) -> None:
        """Service maps inside settings merge per service."""
        existing = {"model": "a", "mcpServers": {"fs": {"command": "x"}}}
        incoming = {"model": "b", "mcpServers": {"fs": {"command": "y"}, "web": {}}}

        result = merge_config(existing, incoming, MERGE, FileCategory.SETTINGS)

        assert result.merged == {
            "model": "b",
            "mcpServers": {"fs": {"command": "y"}, "web": {}},
        }
        assert [(c.category, c.name) for c in result.conflicts] == [
            (FileCategory.SETTINGS, "model"),
            (FileCategory.MCP, "fs"),
        ]

    def test_profiles_routed(self) -> None:
        """Profile files go through profile merging."""
        result = merge_config(
            {"profiles": {"a": {}}}, {"profiles": {"b": {}}}, SKIP, FileCategory.PROFILES
        )

        assert result.merged == {"profiles": {"a": {}, "b": {}}}


class TestSummarizeConflicts:
    """Tests for summarize_conflicts function."""

    def test_counts_and_critical(self) -> None:
        """Conflicts are counted per category; MCP and profiles are critical."""
        conflicts = [
            ConfigConflict(FileCategory.SETTINGS, "a", 1, 2),
            ConfigConflict(FileCategory.MCP, "fs", {}, {"x": 1}),
            ConfigConflict(FileCategory.SETTINGS, "b", 1, 2),
        ]

        summary = summarize_conflicts(conflicts)

        assert summary.total == 3
        assert summary.by_category == {FileCategory.SETTINGS: 2, FileCategory.MCP: 1}
        assert [c.name for c in summary.critical] == ["fs"]


class TestResolveConflicts:
    """Tests for resolve_conflicts function."""

    def test_use_existing_and_use_incoming(self) -> None:
        """Each choice picks its side for the named key."""
        existing = {"model": "sonnet", "theme": "dark"}
        incoming = {"model": "opus", "theme": "light"}
        merged = merge_settings(existing, incoming, MERGE)

        result = resolve_conflicts(
            merged.merged,
            merged.conflicts,
            {"model": ConflictChoice.USE_EXISTING, "theme": ConflictChoice.USE_INCOMING},
        )

        assert result.merged == {"model": "sonnet", "theme": "light"}
        assert result.conflicts == ()

    def test_nested_key_path(self) -> None:
        """Dotted names address nested keys."""
        merged = merge_settings(
            {"permissions": {"mode": "ask"}}, {"permissions": {"mode": "allow"}}, MERGE
        )

        result = resolve_conflicts(
            merged.merged, merged.conflicts, {"permissions.mode": ConflictChoice.USE_EXISTING}
        )

        assert result.merged == {"permissions": {"mode": "ask"}}

    def test_merge_choice_combines_both_sides(self) -> None:
        """Mappings are deep merged and lists unioned."""
        conflict = ConfigConflict(
            category=FileCategory.SETTINGS,
            name="config",
            existing={"a": 1, "tags": ["x"]},
            incoming={"c": 4, "tags": ["y"]},
        )

        result = resolve_conflicts({"config": {}}, [conflict], {"config": ConflictChoice.MERGE})

        assert result.merged == {"config": {"a": 1, "c": 4, "tags": ["x", "y"]}}

    def test_rename_keeps_both_values(self) -> None:
        """The existing value stays; the incoming one gets an _imported key."""
        merged = merge_settings({"value": "old"}, {"value": "new"}, MERGE)

        result = resolve_conflicts(
            merged.merged, merged.conflicts, {"value": ConflictChoice.RENAME}
        )

        assert result.merged == {"value": "old", "value_imported": "new"}

    def test_mcp_service_by_name(self) -> None:
        """MCP conflicts are located inside the service map."""
        existing = {"mcpServers": {"fs": {"command": "old"}}}
        incoming = {"mcpServers": {"fs": {"command": "new"}}}
        merged = merge_config(existing, incoming, MERGE, FileCategory.MCP)

        result = resolve_conflicts(merged.merged, merged.conflicts, {"fs": ConflictChoice.RENAME})

        assert result.merged == {
            "mcpServers": {"fs": {"command": "old"}, "fs_imported": {"command": "new"}}
        }

    def test_list_profile_rename_appends_copy(self) -> None:
        """Renaming a list profile appends the incoming table under a new name."""
        existing = {"profiles": [{"name": "work", "model": "a"}]}
        incoming = {"profiles": [{"name": "work", "model": "b"}]}
        merged = merge_profiles(existing, incoming, MERGE)

        result = resolve_conflicts(merged.merged, merged.conflicts, {"work": ConflictChoice.RENAME})

        assert result.merged["profiles"] == [  # type: ignore[index]
            {"name": "work", "model": "a"},
            {"name": "work_imported", "model": "b"},
        ]

    def test_default_profile_choice(self) -> None:
        """The default profile pointer is a top-level key."""
        existing = {"current_profile": "work", "profiles": {"work": {}, "home": {}}}
        incoming = {"current_profile": "home", "profiles": {}}
        merged = merge_profiles(existing, incoming, MERGE)

        result = resolve_conflicts(
            merged.merged, merged.conflicts, {"current_profile": ConflictChoice.USE_EXISTING}
        )

        assert result.merged["current_profile"] == "work"  # type: ignore[index]

    def test_unresolved_conflicts_returned(self) -> None:
        """Conflicts without a choice are left to the strategy."""
        merged = merge_settings({"a": 1, "b": 1}, {"a": 2, "b": 2}, MERGE)

        result = resolve_conflicts(
            merged.merged, merged.conflicts, {"a": ConflictChoice.USE_EXISTING}
        )

        assert result.merged == {"a": 1, "b": 2}
        assert [c.name for c in result.conflicts] == ["b"]

    def test_unlocatable_name_warns(self) -> None:
        """A name whose parent is not a mapping is reported, not applied."""
        conflict = ConfigConflict(
            category=FileCategory.SETTINGS, name="a.b", existing=1, incoming=2
        )

        result = resolve_conflicts({"a": "flat"}, [conflict], {"a.b": ConflictChoice.USE_EXISTING})

        assert result.merged == {"a": "flat"}
        assert "not found" in result.warnings[0]

    def test_input_not_mutated(self) -> None:
        """The merged tree passed in is left untouched."""
        tree = {"value": "new"}
        conflict = ConfigConflict(
            category=FileCategory.SETTINGS, name="value", existing="old", incoming="new"
        )

        resolve_conflicts(tree, [conflict], {"value": ConflictChoice.USE_EXISTING})

        assert tree == {"value": "new"}
