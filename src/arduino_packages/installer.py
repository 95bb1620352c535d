"""
High-level installer.

Ties the pieces together for one run: load package indices, resolve the
selected platforms, build the installation plan, execute it, and load the
boards.txt / platform.txt properties of the installed hardware.
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import List, Optional

from arduino_packages.config import InstallConfig
from arduino_packages.packages import (
    InstallationPlan,
    ManifestStore,
    ResolvedPlatform,
    build_plan,
    hardware_paths,
    host_identifiers,
    select_by_architecture,
)
from arduino_packages.packages.pipeline import (
    ExecutionResult,
    InstallProgress,
    LoggingCallback,
    NullCallback,
    PlanExecutor,
)
from arduino_packages.properties import Boards, KeyCollision, Platforms, Properties

logger = logging.getLogger(__name__)


@dataclass
class InstallReport:
    """Everything produced by a completed run.

    Attributes:
        plan: The executed plan
        result: Executor result (None for dry runs)
        boards: Merged boards.txt properties of all installed hardware
        platforms: Merged platform.txt properties of all installed hardware
        board_properties: boards narrowed to the configured board id
        collisions: Property keys overwritten while merging
    """

    plan: InstallationPlan
    result: Optional[ExecutionResult] = None
    boards: Boards = field(default_factory=Boards)
    platforms: Platforms = field(default_factory=Platforms)
    board_properties: Properties = field(default_factory=Properties)
    collisions: List[KeyCollision] = field(default_factory=list)


class Installer:
    """Runs the load -> resolve -> plan -> execute -> narrow sequence.

    Each step raises a PackagesError subclass on failure; nothing here exits
    the process.

    Args:
        config: Settings for this run.
    """

    def __init__(self, config: InstallConfig) -> None:
        self.config = config

    def load_store(self) -> ManifestStore:
        """Load every configured package index, in order."""
        store = ManifestStore()
        for path in self.config.indices:
            store.load(path)
        return store

    def resolve(self, store: ManifestStore) -> List[ResolvedPlatform]:
        """Resolve every configured selection, in order."""
        resolved: List[ResolvedPlatform] = []
        for selection in self.config.selections:
            selected = select_by_architecture(
                store,
                selection.packages,
                selection.architecture,
                pinned_version=selection.version,
                strict_pin=self.config.strict_pin,
            )
            if not selected:
                logger.warning("No platforms match %s", selection)
            resolved.extend(selected.values())
        return resolved

    def allowed_hosts(self) -> List[str]:
        return list(self.config.hosts) or host_identifiers()

    def build_plan(self, store: ManifestStore, resolved: List[ResolvedPlatform]) -> InstallationPlan:
        return build_plan(store, resolved, self.config.root_directory, self.allowed_hosts())

    def execute(self, plan: InstallationPlan) -> ExecutionResult:
        """Execute the plan, with a live display when attached to a terminal."""
        executor = PlanExecutor(self.config.cache_dir, max_download_workers=self.config.jobs)

        use_tui = self.config.use_tui
        if use_tui is None:
            use_tui = _is_tty()

        if not use_tui:
            callback = LoggingCallback() if self.config.verbose else NullCallback()
            return executor.run(plan, callback)

        display = InstallProgress(
            title=f"Installing {len(plan)} archives into {self.config.root_directory}",
            verbose=self.config.verbose,
        )
        for entry in plan.files:
            display.register_task(entry.name, entry.size, url=entry.url, dest_path=entry.path)
        with display:
            return executor.run(plan, display)

    def load_properties(self, report: InstallReport) -> None:
        """Load boards.txt and platform.txt from every installed hardware path."""
        for path in hardware_paths(report.plan):
            report.collisions.extend(report.boards.add_under(path, Boards.FILE_NAME))
            report.collisions.extend(report.platforms.add_under(path, Platforms.FILE_NAME))
        report.board_properties = report.boards.narrow(self.config.board)

    def run(self) -> InstallReport:
        """Run every step.

        Raises:
            PackagesError: On the first fatal error of any kind
        """
        store = self.load_store()
        resolved = self.resolve(store)
        report = InstallReport(plan=self.build_plan(store, resolved))
        if self.config.dry_run:
            return report

        report.result = self.execute(report.plan)
        report.result.raise_for_error()
        self.load_properties(report)
        return report


def _is_tty() -> bool:
    """Check if stdout is a terminal (TTY)."""
    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False
