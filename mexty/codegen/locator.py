"""Package locator — find the local checkout that receives generated exports."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from mexty.config import SyncConfig
from mexty.utils.git_ops import find_worktree_root

logger = logging.getLogger(__name__)

DESCRIPTOR_FILE = "package.json"


def candidate_dirs(config: SyncConfig) -> list[Path]:
    """Directories probed for the target package, in priority order.

    An explicit ``package_dir`` is the only candidate when set. Otherwise
    the sibling, child and grand-sibling checkouts of the working directory
    are tried, followed by one at the root of the enclosing Git working tree.
    """
    if config.package_dir is not None:
        return [Path(config.package_dir)]

    cwd = config.resolve_working_dir()
    name = config.package_dir_name
    candidates = [
        cwd / ".." / name,
        cwd / name,
        cwd / ".." / ".." / name,
    ]

    root = find_worktree_root(cwd)
    if root is not None:
        candidates.append(root / name)

    unique: list[Path] = []
    seen: set[Path] = set()
    for candidate in candidates:
        resolved = candidate.resolve()
        if resolved not in seen:
            seen.add(resolved)
            unique.append(resolved)
    return unique


def read_package_name(package_dir: Path) -> str | None:
    """Return the ``name`` declared in ``package_dir/package.json``, if readable."""
    descriptor = package_dir / DESCRIPTOR_FILE
    if not descriptor.is_file():
        return None
    try:
        data = json.loads(descriptor.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.debug("Ignoring unreadable %s: %s", descriptor, e)
        return None
    if not isinstance(data, dict):
        return None
    name = data.get("name")
    return name if isinstance(name, str) else None


def locate_package(config: SyncConfig) -> Path | None:
    """Return the first candidate whose descriptor names ``config.package_name``."""
    for candidate in candidate_dirs(config):
        name = read_package_name(candidate)
        if name == config.package_name:
            logger.info("Found %s at %s", config.package_name, candidate)
            return candidate
        logger.debug("Skipping %s (package name: %s)", candidate, name)
    return None
