"""Filesystem and host helpers shared across BaseCamp."""

import os
import platform
import tempfile
from pathlib import Path
from typing import Tuple, Union

import psutil


def is_windows() -> bool:
    return platform.system().lower() == "windows"


def normalize_path(path: Union[str, Path]) -> Path:
    """Absolute, symlink-free form of ``path`` with ``~`` expanded."""
    return Path(path).expanduser().resolve()


def create_secure_temp_file(directory: Path, suffix: str = ".tmp") -> Tuple[int, Path]:
    """
    Open a private temp file inside ``directory``, creating the directory if needed.

    The file lives beside its eventual destination so a later ``os.replace``
    stays on one filesystem and is atomic.

    Returns:
        The open file descriptor and the temp file path
    """
    directory.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(dir=str(directory), prefix=".", suffix=suffix)
    return fd, Path(name)


def get_git_executable() -> str:
    return "git.exe" if is_windows() else "git"


def get_available_cpu_count() -> int:
    """
    Number of execution units available to this process.

    Uses the CPU affinity mask where the platform exposes one, so containers
    and pinned processes report what they can actually use.
    """
    try:
        affinity = psutil.Process().cpu_affinity()
        if affinity:
            return len(affinity)
    except (AttributeError, NotImplementedError, psutil.Error):
        # macOS has no cpu_affinity
        pass

    return psutil.cpu_count(logical=True) or 1


def get_free_disk_space(path: Path) -> int:
    """
    Free bytes on the filesystem that would hold ``path``.

    ``path`` need not exist yet; the nearest existing ancestor is measured.
    """
    existing = path
    while not existing.exists() and existing.parent != existing:
        existing = existing.parent

    return psutil.disk_usage(str(existing)).free


def is_within(path: Path, root: Path) -> bool:
    """Check whether ``path`` lies strictly inside ``root`` once both are resolved."""
    resolved_path = Path(os.path.realpath(path))
    resolved_root = Path(os.path.realpath(root))

    if resolved_path == resolved_root:
        return False

    return resolved_root in resolved_path.parents
