"""Tests for the end-to-end sync run state machine."""

import json
import tempfile
import unittest.mock
from pathlib import Path

from mexty.config import SyncConfig
from mexty.errors import FetchError
from mexty.registry.models import RegistryEntry, RegistryMeta, RegistrySnapshot
from mexty.sync.orchestrator import SyncOrchestrator, SyncState

TS = "2024-05-01T12:00:00.000Z"
INDEX = "export * from './components';\n"


class StubFetcher:
    """Returns a fixed snapshot, or raises a fixed error."""

    def __init__(self, snapshot=None, error=None):
        self.snapshot = snapshot
        self.error = error
        self.calls = 0

    def fetch(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.snapshot


def _entry(name: str, author: str | None = None) -> RegistryEntry:
    return RegistryEntry(
        block_id="65f1c0ffee0000000000abcd",
        component_name=name,
        title=name,
        description=f"It's the {name} block",
        last_updated="2024-04-30T10:00:00.000Z",
        author=author,
    )


def _snapshot(global_names=("Widget",), authors=None) -> RegistrySnapshot:
    authors = authors if authors is not None else {"alice": ["Widget"], "bob": ["Widget"]}
    return RegistrySnapshot(
        registry={name: _entry(name) for name in global_names},
        author_registry={
            author: {name: _entry(name, author) for name in names}
            for author, names in authors.items()
        },
        meta=RegistryMeta(total_blocks=len(global_names)),
    )


def _package(tmpdir: str) -> Path:
    root = Path(tmpdir) / "mext-block"
    (root / "src").mkdir(parents=True)
    (root / "package.json").write_text(json.dumps({"name": "@mexty/block"}))
    (root / "src" / "index.ts").write_text(INDEX)
    return root


def _files(root: Path) -> list[str]:
    return sorted(str(p.relative_to(root)) for p in root.rglob("*") if p.is_file())


def _run(root: Path, fetcher: StubFetcher):
    config = SyncConfig(package_dir=root, working_dir=root.parent)
    return SyncOrchestrator(config, fetcher=fetcher).run(generated_at=TS)


def test_successful_run():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        result = _run(root, StubFetcher(_snapshot()))

        assert result.ok
        assert result.state == SyncState.SUCCESS
        assert result.history == [
            SyncState.START,
            SyncState.FETCHING,
            SyncState.LOCATING_PACKAGE,
            SyncState.SYNTHESIZING,
            SyncState.MATERIALIZING,
            SyncState.SUCCESS,
        ]
        assert result.package_dir == root
        assert result.report.entry_point_patched
        assert _files(root) == [
            "package.json",
            "src/authors/alice/index.ts",
            "src/authors/bob/index.ts",
            "src/index.ts",
            "src/namedExports.ts",
        ]
        assert "1 component(s), 2 author(s)" in result.summary()


def test_rerun_with_same_snapshot_is_byte_identical():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        _run(root, StubFetcher(_snapshot()))
        first = {f: (root / f).read_text() for f in _files(root)}

        result = _run(root, StubFetcher(_snapshot()))
        second = {f: (root / f).read_text() for f in _files(root)}

        assert result.ok
        assert not result.report.entry_point_patched
        assert first == second


def test_empty_registry_writes_nothing():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        result = _run(root, StubFetcher(_snapshot(global_names=(), authors={})))

        assert result.ok
        assert result.state == SyncState.EMPTY
        assert result.component_count == 0
        assert result.author_count == 0
        assert _files(root) == ["package.json", "src/index.ts"]
        assert (root / "src" / "index.ts").read_text() == INDEX
        assert "Nothing to sync" in result.summary()


def test_package_not_found_skips_codegen():
    with tempfile.TemporaryDirectory() as tmpdir:
        missing = Path(tmpdir) / "not-a-package"
        missing.mkdir()
        result = _run(missing, StubFetcher(_snapshot()))

        assert result.ok
        assert result.state == SyncState.SKIPPED_CODEGEN
        assert result.package_dir is None
        assert result.report is None
        assert list(missing.iterdir()) == []


def test_fetch_failure():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        result = _run(root, StubFetcher(error=FetchError("Server responded with 500", 500)))

        assert not result.ok
        assert result.state == SyncState.FAILED
        assert result.failed_stage == SyncState.FETCHING
        assert result.snapshot is None
        assert "fetching" in result.summary()
        assert _files(root) == ["package.json", "src/index.ts"]


def test_invalid_identifier_fails_without_writing():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        snapshot = _snapshot(global_names=("Widget", "123Bad-Name"))
        result = _run(root, StubFetcher(snapshot))

        assert not result.ok
        assert result.failed_stage == SyncState.SYNTHESIZING
        assert "123Bad-Name" in str(result.error)
        assert _files(root) == ["package.json", "src/index.ts"]
        assert (root / "src" / "index.ts").read_text() == INDEX


def test_invalid_author_identifier_keeps_previous_output():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        _run(root, StubFetcher(_snapshot()))
        before = {f: (root / f).read_text() for f in _files(root)}

        bad = _snapshot(authors={"alice": ["Widget"], "bob": ["123Bad-Name"]})
        result = _run(root, StubFetcher(bad))

        assert result.state == SyncState.FAILED
        assert {f: (root / f).read_text() for f in _files(root)} == before


def test_removed_author_disappears_on_next_run():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        _run(root, StubFetcher(_snapshot(authors={"alice": ["Widget"], "bob": ["Widget"]})))
        assert (root / "src" / "authors" / "bob" / "index.ts").exists()

        _run(root, StubFetcher(_snapshot(authors={"alice": ["Widget"]})))
        assert not (root / "src" / "authors" / "bob").exists()
        assert (root / "src" / "authors" / "alice" / "index.ts").exists()
        assert "bob" not in (root / "src" / "namedExports.ts").read_text()


def test_materialization_failure():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        (root / "src" / "namedExports.ts").mkdir()
        result = _run(root, StubFetcher(_snapshot()))

        assert result.state == SyncState.FAILED
        assert result.failed_stage == SyncState.MATERIALIZING
        # Author modules were written before the failure and stay
        assert (root / "src" / "authors" / "alice" / "index.ts").exists()


def test_state_callback_sees_every_transition():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        seen = []
        config = SyncConfig(package_dir=root)
        orchestrator = SyncOrchestrator(config, fetcher=StubFetcher(_snapshot()), on_state=seen.append)
        result = orchestrator.run(generated_at=TS)
        assert seen == result.history


def test_lone_surrogate_in_description_is_written():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        stale = root / "src" / "authors" / "old" / "index.ts"
        stale.parent.mkdir(parents=True)
        stale.write_text("// stale")

        entry = RegistryEntry(
            block_id="65f1c0ffee0000000000abcd",
            component_name="Widget",
            title="Widget",
            description=json.loads('"bad \\ud800 text"'),
            last_updated="2024-04-30T10:00:00.000Z",
            author="alice",
        )
        snapshot = RegistrySnapshot(
            registry={"Widget": entry},
            author_registry={"alice": {"Widget": entry}},
        )
        result = _run(root, StubFetcher(snapshot))

        assert result.ok, result.error
        assert not stale.exists()
        assert "\\ud800" in (root / "src" / "namedExports.ts").read_text(encoding="utf-8")
        assert (root / "src" / "authors" / "alice" / "index.ts").exists()


def test_non_utf8_entry_point_fails_materializing():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        (root / "src" / "index.ts").write_bytes(b"export * from './components';\n// caf\xe9\n")
        result = _run(root, StubFetcher(_snapshot()))

        assert result.state == SyncState.FAILED
        assert result.failed_stage == SyncState.MATERIALIZING
        assert result.error.path.endswith("index.ts")


def test_unreadable_git_repo_does_not_abort_locating():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = _package(tmpdir)
        config = SyncConfig(working_dir=root.parent)
        with unittest.mock.patch("mexty.utils.git_ops.Repo", side_effect=PermissionError("denied")):
            result = SyncOrchestrator(config, fetcher=StubFetcher(_snapshot())).run(generated_at=TS)

        assert result.ok, result.error
        assert result.package_dir == root.resolve()
