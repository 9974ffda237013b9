"""Copy engine — duplicate a directory tree, OS bulk-copy first, native parallel copy last.

Strategies are tried in order. Every strategy but the last is optional: if
it is unavailable it is skipped, and if it fails for any reason the engine
falls through to the next one. Errors from the last strategy propagate.

Nothing at the destination is ever deleted; callers replacing a directory
clear it themselves first.
"""

from __future__ import annotations

import platform
import shutil
import subprocess
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from savesnap.core.walker import walk_tree
from savesnap.errors import (
    SAMPLE_LIMIT,
    IOFatalError,
    PartialCopyError,
    SnapshotError,
    StrategyUnavailableError,
)
from savesnap.models.copy_report import CopyFailure, CopyJob, CopyReport
from savesnap.utils import resolve_workers

if TYPE_CHECKING:
    from savesnap.config import Config


# ═══════════════════════════════════════════════════════════════════════════════
#  Strategies
# ═══════════════════════════════════════════════════════════════════════════════

class CopyStrategy(ABC):
    """One way of copying *src* into *dst*."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this strategy can run on the current machine."""
        ...

    @abstractmethod
    def copy(self, src: Path, dst: Path) -> CopyReport:
        ...


class RobocopyStrategy(CopyStrategy):
    """Windows robocopy: multi-threaded, retrying, keeps empty dirs and timestamps."""

    # robocopy exit codes 0-7 mean success (possibly with extra/mismatched files)
    MAX_SUCCESS_CODE = 7

    def __init__(self, workers: int | None = None) -> None:
        self._threads = min(resolve_workers(workers), 128)

    @property
    def name(self) -> str:
        return "robocopy"

    def is_available(self) -> bool:
        return platform.system() == "Windows" and shutil.which("robocopy") is not None

    def command(self, src: Path, dst: Path) -> list[str]:
        return [
            "robocopy",
            str(src),
            str(dst),
            "/E",  # Recurse, including empty directories
            f"/MT:{self._threads}",
            "/R:3",  # Retries
            "/W:1",  # Seconds between retries
            "/DCOPY:DAT",  # Keep directory timestamps
            "/NFL",
            "/NDL",
            "/NP",
        ]

    def copy(self, src: Path, dst: Path) -> CopyReport:
        proc = subprocess.run(self.command(src, dst), capture_output=True)  # noqa: S603
        if not 0 <= proc.returncode <= self.MAX_SUCCESS_CODE:
            output = (proc.stderr or proc.stdout).decode(errors="replace").strip()
            raise SnapshotError(f"robocopy exited with code {proc.returncode}: {output}")
        if proc.returncode > 1:
            logger.debug(f"robocopy finished with warnings (code {proc.returncode})")
        return CopyReport(strategy=self.name)


class RsyncStrategy(CopyStrategy):
    """rsync archive mode: recursive, keeps empty dirs, permissions and timestamps."""

    # 24: some source files vanished mid-transfer
    SUCCESS_CODES = frozenset({0, 24})

    @property
    def name(self) -> str:
        return "rsync"

    def is_available(self) -> bool:
        return platform.system() != "Windows" and shutil.which("rsync") is not None

    def command(self, src: Path, dst: Path) -> list[str]:
        # Trailing slash: copy the contents of src, not src itself
        return ["rsync", "-a", f"{src}/", str(dst)]

    def copy(self, src: Path, dst: Path) -> CopyReport:
        proc = subprocess.run(self.command(src, dst), capture_output=True)  # noqa: S603
        if proc.returncode not in self.SUCCESS_CODES:
            output = proc.stderr.decode(errors="replace").strip()
            raise SnapshotError(f"rsync exited with code {proc.returncode}: {output}")
        return CopyReport(strategy=self.name)


class NativeCopyStrategy(CopyStrategy):
    """
    Pure-Python fallback.

    Phases:
      1. Scan      — walk src, map every entry to its destination
      2. Structure — create all destination directories, sequentially
      3. Copy      — copy files on a thread pool; each task reports its own failure
      4. Timestamps — copy directory stats deepest-first
    """

    def __init__(self, workers: int | None = None) -> None:
        self._workers = workers

    @property
    def name(self) -> str:
        return "native"

    def is_available(self) -> bool:
        return True

    def copy(self, src: Path, dst: Path) -> CopyReport:
        jobs = self._scan(src, dst)
        self._create_structure(dst, jobs)

        files = [job for job in jobs if not job.is_directory]
        failures = self._copy_files(files)
        self._copy_directory_times(jobs)

        return CopyReport(
            strategy=self.name,
            files_copied=len(files) - len(failures),
            failures=failures,
        )

    # ── Phases ──

    def _scan(self, src: Path, dst: Path) -> list[CopyJob]:
        if not src.is_dir():
            raise IOFatalError(f"Copy source is not a directory: {src}")
        return [
            CopyJob(
                source=src / entry.relative_path,
                destination=dst / entry.relative_path,
                is_directory=entry.is_directory,
            )
            for entry in walk_tree(src, workers=self._workers)
        ]

    @staticmethod
    def _create_structure(dst: Path, jobs: list[CopyJob]) -> None:
        try:
            dst.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFatalError(f"Cannot create destination {dst}: {e}") from e

        for job in jobs:
            if not job.is_directory:
                continue
            try:
                job.destination.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                # Files below it will fail individually and be reported
                logger.error(f"Cannot create directory {job.destination}: {e}")

    @staticmethod
    def _copy_one(job: CopyJob) -> CopyFailure | None:
        try:
            shutil.copy2(job.source, job.destination, follow_symlinks=False)
        except OSError as e:
            return CopyFailure(path=job.source, error=str(e))
        return None

    def _copy_files(self, files: list[CopyJob]) -> list[CopyFailure]:
        if not files:
            return []
        with ThreadPoolExecutor(max_workers=resolve_workers(self._workers)) as pool:
            results = list(pool.map(self._copy_one, files))
        return [r for r in results if r is not None]

    @staticmethod
    def _copy_directory_times(jobs: list[CopyJob]) -> None:
        # Deepest first: stamping a child directory touches its parent's mtime
        directories = [job for job in jobs if job.is_directory]
        directories.sort(key=lambda job: len(job.destination.parts), reverse=True)
        for job in directories:
            try:
                shutil.copystat(job.source, job.destination, follow_symlinks=False)
            except OSError as e:
                logger.warning(f"Cannot copy timestamps to {job.destination}: {e}")


def default_strategies(workers: int | None = None, fast_copy: bool = True) -> list[CopyStrategy]:
    """Fast paths first (when enabled), native copy last."""
    strategies: list[CopyStrategy] = []
    if fast_copy:
        strategies += [RobocopyStrategy(workers), RsyncStrategy()]
    strategies.append(NativeCopyStrategy(workers))
    return strategies


# ═══════════════════════════════════════════════════════════════════════════════
#  Engine
# ═══════════════════════════════════════════════════════════════════════════════

class CopyEngine:
    """Runs copy strategies in order until one succeeds."""

    def __init__(self, strategies: list[CopyStrategy] | None = None) -> None:
        self._strategies = strategies if strategies is not None else default_strategies()

    @classmethod
    def from_config(cls, config: Config) -> CopyEngine:
        return cls(default_strategies(config.workers, config.fast_copy))

    @property
    def strategies(self) -> list[CopyStrategy]:
        return list(self._strategies)

    def copy_tree(
        self,
        src: str | Path,
        dst: str | Path,
        *,
        allow_partial: bool = False,
    ) -> CopyReport:
        """
        Copy the contents of *src* into *dst*.

        Raises IOFatalError when the destination cannot be prepared or the
        source cannot be scanned, and PartialCopyError when some files failed
        (unless *allow_partial*, in which case the failures are in the report).
        Files that did copy are left in place either way.
        """
        src, dst = Path(src), Path(dst)
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFatalError(f"Cannot create parent directory {dst.parent}: {e}") from e

        candidates = []
        for strategy in self._strategies:
            if strategy.is_available():
                candidates.append(strategy)
            else:
                logger.debug(f"Copy strategy '{strategy.name}' unavailable, skipping")
        if not candidates:
            raise StrategyUnavailableError("No copy strategy available")

        *optional, last = candidates
        for strategy in optional:
            try:
                report = strategy.copy(src, dst)
            except (SnapshotError, OSError, subprocess.SubprocessError) as e:
                logger.warning(f"Copy via {strategy.name} failed, falling back: {e}")
                continue
            return self._finish(report, src, dst, allow_partial)

        return self._finish(last.copy(src, dst), src, dst, allow_partial)

    @staticmethod
    def _finish(report: CopyReport, src: Path, dst: Path, allow_partial: bool) -> CopyReport:
        if report.ok:
            logger.info(f"Copied {src} -> {dst} via {report.strategy}")
            return report

        logger.error(
            f"{len(report.failures)} file(s) failed to copy from {src} to {dst} "
            f"via {report.strategy}"
        )
        for failure in report.failures[:SAMPLE_LIMIT]:
            logger.error(f"  {failure.path}: {failure.error}")
        if not allow_partial:
            raise PartialCopyError(report.failures)
        return report
