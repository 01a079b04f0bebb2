"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from cfgport.core.platform import PlatformContext, PlatformType
from cfgport.portability.models import ExportFileInfo, ExportMetadata, FileCategory, ToolType
from cfgport.portability.package import ArchiveEntry, build_archive, checksum

PackageFactory = Callable[..., Path]


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Fake home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def context(home: Path) -> PlatformContext:
    """Linux platform context rooted at the fake home directory."""
    return PlatformContext(platform=PlatformType.LINUX, home=str(home))


@pytest.fixture
def claude_dir(home: Path) -> Path:
    """Claude Code configuration directory inside the fake home."""
    path = home / ".claude"
    path.mkdir()
    return path


@pytest.fixture
def sample_settings() -> dict[str, object]:
    """Claude Code settings carrying credentials."""
    return {
        "model": "opus",
        "env": {
            "ANTHROPIC_API_KEY": "sk-ant-live-123",
            "ANTHROPIC_AUTH_TOKEN": "token-abc",
            "DEBUG": "1",
        },
        "permissions": {"allow": ["Bash(git:*)"]},
    }


@pytest.fixture
def make_package(tmp_path: Path) -> PackageFactory:
    """Factory building a package archive from in-memory files.

    Files are given as ``{archive_path: (category, content)}``. Keyword
    overrides are passed to ExportMetadata.
    """

    def _make(
        files: dict[str, tuple[FileCategory, str | bytes]],
        name: str = "package.zip",
        **metadata: object,
    ) -> Path:
        entries: list[ArchiveEntry] = []
        infos: list[ExportFileInfo] = []
        for path, (category, content) in files.items():
            data = content.encode("utf-8") if isinstance(content, str) else content
            entries.append(ArchiveEntry(destination=path, content=data))
            infos.append(
                ExportFileInfo(
                    path=path, category=category, size=len(data), checksum=checksum(data)
                )
            )
        fields: dict[str, object] = {
            "platform": PlatformType.LINUX,
            "tool_types": [ToolType.CLAUDE_CODE],
            "scope": ["all"],
            "files": infos,
        }
        fields.update(metadata)
        manifest = ExportMetadata(**fields)  # type: ignore[arg-type]
        return build_archive(entries, manifest, tmp_path / "packages" / name)

    return _make

