"""Git helpers — inspect the repository the CLI is running in."""

from __future__ import annotations

from pathlib import Path

from git import GitError, Repo


def find_worktree_root(path: str | Path) -> Path | None:
    """Return the working tree root of the repo containing ``path``.

    Returns ``None`` when ``path`` is not inside a Git working tree (or is
    inside a bare repository), or when the repository cannot be read.
    """
    try:
        repo = Repo(path, search_parent_directories=True)
    except (GitError, OSError):
        return None

    try:
        if repo.bare or repo.working_tree_dir is None:
            return None
        return Path(repo.working_tree_dir)
    except (GitError, OSError):
        return None
    finally:
        repo.close()
