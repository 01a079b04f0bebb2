"""Platform identification and the explicit platform context.

The engine never reads process-global state (environment, home directory,
``sys.platform``) from deep helpers. Instead a :class:`PlatformContext` is
built once at the edge of the program and passed down.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class PlatformType(str, Enum):
    """Operating system / environment family.

    Attributes:
        WIN32: Windows (drive letters, backslash separators).
        DARWIN: macOS.
        LINUX: Linux desktop or server.
        TERMUX: Android Termux environment.
    """

    WIN32 = "win32"
    DARWIN = "darwin"
    LINUX = "linux"
    TERMUX = "termux"

    @property
    def is_windows(self) -> bool:
        """Whether this platform uses Windows path conventions."""
        return self is PlatformType.WIN32


def detect_platform(environ: Mapping[str, str] | None = None) -> PlatformType:
    """Detect the platform of the running process.

    Args:
        environ: Environment to inspect for Termux markers. Defaults to
            ``os.environ``.

    Returns:
        The detected PlatformType. Unknown platforms fall back to LINUX.
    """
    env = os.environ if environ is None else environ

    if sys.platform.startswith("win"):
        return PlatformType.WIN32
    if sys.platform == "darwin":
        return PlatformType.DARWIN
    if "TERMUX_VERSION" in env or "com.termux" in env.get("PREFIX", ""):
        return PlatformType.TERMUX
    return PlatformType.LINUX


@dataclass(frozen=True, slots=True)
class PlatformContext:
    """Home directory and platform for one invocation.

    Attributes:
        platform: Platform the engine is running on (the import target).
        home: Absolute home directory of the current user, in the native
            notation of ``platform``.
    """

    platform: PlatformType
    home: str

    def __post_init__(self) -> None:
        """Validate context data after initialization."""
        if not self.home:
            msg = "Home directory cannot be empty"
            raise ValueError(msg)

    @classmethod
    def current(cls) -> PlatformContext:
        """Build the context of the running process."""
        return cls(
            platform=detect_platform(),
            home=str(Path.home()),
        )

    @property
    def is_windows(self) -> bool:
        """Whether the context uses Windows path conventions."""
        return self.platform.is_windows

    @property
    def home_path(self) -> Path:
        """Home directory as a filesystem path."""
        return Path(self.home)
