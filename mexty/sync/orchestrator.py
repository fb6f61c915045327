"""Sync orchestrator — drive one registry sync run to a terminal state.

The run is linear with no retries::

    START -> FETCHING -> EMPTY
                      -> LOCATING_PACKAGE -> SKIPPED_CODEGEN
                                          -> SYNTHESIZING -> MATERIALIZING -> SUCCESS

Any stage may end in FAILED. EMPTY and SKIPPED_CODEGEN are successful
outcomes: the registry was fetched, there was just nothing to generate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from mexty.codegen.locator import locate_package
from mexty.codegen.materializer import FileMaterializer, MaterializationReport
from mexty.codegen.synthesizer import ExportSynthesizer, SynthesisResult
from mexty.config import SyncConfig
from mexty.errors import MextyError
from mexty.registry.fetcher import RegistryFetcher
from mexty.registry.models import RegistrySnapshot

logger = logging.getLogger(__name__)


class SyncState(Enum):
    START = "start"
    FETCHING = "fetching"
    EMPTY = "empty"
    LOCATING_PACKAGE = "locating_package"
    SKIPPED_CODEGEN = "skipped_codegen"
    SYNTHESIZING = "synthesizing"
    MATERIALIZING = "materializing"
    SUCCESS = "success"
    FAILED = "failed"


SUCCESSFUL_STATES = (SyncState.SUCCESS, SyncState.EMPTY, SyncState.SKIPPED_CODEGEN)


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    state: SyncState = SyncState.START
    history: list[SyncState] = field(default_factory=list)
    snapshot: Optional[RegistrySnapshot] = None
    package_dir: Optional[Path] = None
    report: Optional[MaterializationReport] = None
    error: Optional[MextyError] = None
    failed_stage: Optional[SyncState] = None

    @property
    def ok(self) -> bool:
        return self.state in SUCCESSFUL_STATES

    @property
    def component_count(self) -> int:
        return self.snapshot.component_count if self.snapshot else 0

    @property
    def author_count(self) -> int:
        return self.snapshot.author_count if self.snapshot else 0

    def summary(self) -> str:
        counts = f"{self.component_count} component(s), {self.author_count} author(s)"
        if self.state == SyncState.FAILED:
            stage = self.failed_stage.value if self.failed_stage else "unknown"
            return f"Sync failed while {stage}: {self.error}"
        if self.state == SyncState.EMPTY:
            return "Nothing to sync: registry has no components"
        if self.state == SyncState.SKIPPED_CODEGEN:
            return f"Synced {counts}; package not found, exports not generated"
        return f"Synced {counts}; exports written to {self.package_dir}"


class SyncOrchestrator:
    """Runs fetch -> locate -> synthesize -> materialize for one config."""

    def __init__(
        self,
        config: SyncConfig,
        fetcher: Optional[RegistryFetcher] = None,
        synthesizer: Optional[ExportSynthesizer] = None,
        on_state: Optional[Callable[[SyncState], None]] = None,
    ):
        self.config = config
        self.fetcher = fetcher or RegistryFetcher(config)
        self.synthesizer = synthesizer or ExportSynthesizer(config.package_name)
        self._on_state = on_state

    def run(self, generated_at: str | None = None) -> SyncResult:
        """Execute one sync run. Never raises for :class:`MextyError`."""
        result = SyncResult()
        self._enter(result, SyncState.START)

        self._enter(result, SyncState.FETCHING)
        try:
            result.snapshot = self.fetcher.fetch()
        except MextyError as e:
            return self._fail(result, e)

        if result.snapshot.is_empty:
            return self._enter(result, SyncState.EMPTY)

        self._enter(result, SyncState.LOCATING_PACKAGE)
        result.package_dir = locate_package(self.config)
        if result.package_dir is None:
            return self._enter(result, SyncState.SKIPPED_CODEGEN)

        self._enter(result, SyncState.SYNTHESIZING)
        try:
            synthesis: SynthesisResult = self.synthesizer.synthesize(
                result.snapshot, generated_at=generated_at
            )
        except MextyError as e:
            return self._fail(result, e)

        self._enter(result, SyncState.MATERIALIZING)
        try:
            result.report = FileMaterializer(result.package_dir).materialize(synthesis)
        except MextyError as e:
            return self._fail(result, e)

        return self._enter(result, SyncState.SUCCESS)

    def _enter(self, result: SyncResult, state: SyncState) -> SyncResult:
        logger.info("Sync state: %s", state.value)
        result.state = state
        result.history.append(state)
        if self._on_state:
            self._on_state(state)
        return result

    def _fail(self, result: SyncResult, error: MextyError) -> SyncResult:
        result.failed_stage = result.state
        result.error = error
        logger.error("Sync failed while %s: %s", result.state.value, error)
        return self._enter(result, SyncState.FAILED)
