"""File materializer — write synthesized modules into the target package.

Write order is fixed and not transactional:

1. ``src/authors/`` is purged and recreated, one ``<author>/index.ts`` each
2. ``src/namedExports.ts`` is overwritten
3. ``src/index.ts`` gets a re-export line appended if it has none

A filesystem error stops the remaining steps; files already written in
the run stay on disk. Re-running with the same snapshot converges.
"""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from mexty.codegen.synthesizer import SynthesisResult
from mexty.errors import MaterializationError

logger = logging.getLogger(__name__)

SRC_DIR = "src"
AUTHORS_DIR = "authors"
AUTHOR_ENTRY_FILE = "index.ts"
GLOBAL_MODULE_FILE = "namedExports.ts"
ENTRY_POINT_FILE = "index.ts"
GLOBAL_MODULE_IMPORT = "./namedExports"

REEXPORT_BLOCK = f"\n// Auto-generated named exports\nexport * from '{GLOBAL_MODULE_IMPORT}';\n"


def reexport_pattern(module_path: str) -> re.Pattern[str]:
    """Match ``export * from '<module_path>'`` in any quote style.

    Tolerates surrounding whitespace, a missing semicolon, and a ``.js`` or
    ``.ts`` extension on the module path.
    """
    return re.compile(
        r"^[ \t]*export\s*\*\s*from\s*(['\"])"
        + re.escape(module_path)
        + r"(?:\.[jt]s)?\1\s*;?[ \t]*$",
        re.MULTILINE,
    )


def has_reexport(content: str, module_path: str = GLOBAL_MODULE_IMPORT) -> bool:
    return bool(reexport_pattern(module_path).search(content))


@dataclass
class MaterializationReport:
    """What one materialization wrote."""

    package_dir: Path
    author_files: list[Path] = field(default_factory=list)
    global_module: Path | None = None
    entry_point_patched: bool = False


class FileMaterializer:
    """Applies a :class:`SynthesisResult` to a package directory."""

    def __init__(self, package_dir: str | Path):
        self.package_dir = Path(package_dir)
        self.src_dir = self.package_dir / SRC_DIR
        self.authors_dir = self.src_dir / AUTHORS_DIR
        self.global_module_path = self.src_dir / GLOBAL_MODULE_FILE
        self.entry_point_path = self.src_dir / ENTRY_POINT_FILE

    def materialize(self, result: SynthesisResult) -> MaterializationReport:
        """Write every generated file, in order.

        Raises:
            MaterializationError: On the first filesystem failure.
        """
        report = MaterializationReport(package_dir=self.package_dir)
        report.author_files = self.write_author_modules(result.author_modules)
        report.global_module = self.write_global_module(result.global_module)
        report.entry_point_patched = self.patch_entry_point()
        return report

    def write_author_modules(self, modules: dict[str, str]) -> list[Path]:
        """Replace ``src/authors/`` with exactly one entry file per author."""
        written = []
        try:
            if self.authors_dir.exists():
                shutil.rmtree(self.authors_dir)
            self.authors_dir.mkdir(parents=True)
        except (OSError, UnicodeError) as e:
            raise MaterializationError(
                f"Failed to reset authors directory: {e}", str(self.authors_dir)
            ) from e

        for author, content in modules.items():
            path = self.authors_dir / author / AUTHOR_ENTRY_FILE
            self._write(path, content)
            logger.debug("Wrote entry file for %s", author)
            written.append(path)
        return written

    def write_global_module(self, content: str) -> Path:
        """Overwrite ``src/namedExports.ts``."""
        self._write(self.global_module_path, content)
        return self.global_module_path

    def patch_entry_point(self) -> bool:
        """Append the re-export to ``src/index.ts`` unless already present.

        Returns True when the file was modified. A missing entry point is
        left missing.
        """
        path = self.entry_point_path
        if not path.is_file():
            logger.debug("No entry point at %s, skipping patch", path)
            return False

        try:
            content = path.read_text(encoding="utf-8")
            if has_reexport(content):
                return False
            with open(path, "a", encoding="utf-8") as f:
                f.write(REEXPORT_BLOCK)
        except (OSError, UnicodeError) as e:
            raise MaterializationError(f"Failed to patch entry point: {e}", str(path)) from e

        logger.info("Added named exports to %s", path)
        return True

    def _write(self, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except (OSError, UnicodeError) as e:
            raise MaterializationError(f"Failed to write file: {e}", str(path)) from e
