"""
Rollback state for one provisioning run.

Every forward operation that creates an externally visible resource records it
here only after the remote call returned, together with the compensating action
that undoes it. On failure the orchestrator unwinds the compensations:

1. Delete created issues
2. Delete created labels
3. Archive the created container (the tracker has no delete)
4. Remove the added code host remote
5. Remove the local workspace directory

A newly created group cannot be removed through the API; it is reported as a
manual cleanup item instead.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CompensationRank(IntEnum):
    """Unwind order. Lower ranks run first."""

    ISSUES = 1
    LABELS = 2
    CONTAINER = 3
    CODE_HOST = 4
    WORKSPACE = 5


@dataclass
class Compensation:
    """A compensating action for one created resource."""

    rank: CompensationRank
    description: str
    action: Callable[[], None]


@dataclass
class RollbackReport:
    """Outcome of an unwind."""

    cleaned: list[str] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)  # (description, error)
    manual_cleanup: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """True when every compensation succeeded and nothing needs manual cleanup."""
        return not self.failures and not self.manual_cleanup


@dataclass
class RollbackState:
    """Resources created so far in the current run."""

    workspace_directory: Optional[Path] = None
    remote_initialized: bool = False
    tracker_team_created: Optional[str] = None
    tracker_project_created: Optional[str] = None
    tracker_issues_created: list[str] = field(default_factory=list)
    tracker_labels_created: list[str] = field(default_factory=list)
    code_host_remote_added: bool = False
    _undo: list[Compensation] = field(default_factory=list, repr=False)

    def _push(self, rank: CompensationRank, description: str, action: Callable[[], None]) -> None:
        self._undo.append(Compensation(rank, description, action))

    def record_workspace(self, path: Path, undo: Callable[[], None]) -> None:
        self.workspace_directory = path
        self._push(CompensationRank.WORKSPACE, f"workspace directory {path}", undo)

    def record_remote_initialized(self) -> None:
        self.remote_initialized = True

    def record_remote_added(self, undo: Callable[[], None]) -> None:
        self.code_host_remote_added = True
        self._push(CompensationRank.CODE_HOST, "code host remote", undo)

    def record_team(self, team_id: str) -> None:
        """Record a new group. No compensation exists for it."""
        self.tracker_team_created = team_id

    def record_project(self, project_id: str, undo: Callable[[], None]) -> None:
        self.tracker_project_created = project_id
        self._push(CompensationRank.CONTAINER, f"project {project_id}", undo)

    def record_issue(self, issue_id: str, undo: Callable[[], None]) -> None:
        self.tracker_issues_created.append(issue_id)
        self._push(CompensationRank.ISSUES, f"issue {issue_id}", undo)

    def record_label(self, label_id: str, undo: Callable[[], None]) -> None:
        self.tracker_labels_created.append(label_id)
        self._push(CompensationRank.LABELS, f"label {label_id}", undo)

    def pending(self) -> list[Compensation]:
        """Compensations in the order they will run: by rank, newest first within a rank."""
        return sorted(reversed(self._undo), key=lambda c: c.rank)

    def unwind(self) -> RollbackReport:
        """
        Run every pending compensation, continuing past individual failures.

        Returns:
            RollbackReport listing what was cleaned, what failed, and what
            needs manual cleanup
        """
        report = RollbackReport()
        compensations = self.pending()
        self._undo = []

        logger.info(f"Rolling back {len(compensations)} resource(s)")

        for compensation in compensations:
            try:
                compensation.action()
                report.cleaned.append(compensation.description)
                logger.info(f"Rolled back {compensation.description}")
            except Exception as e:
                report.failures.append((compensation.description, str(e)))
                report.manual_cleanup.append(compensation.description)
                logger.warning(f"Could not roll back {compensation.description}: {e}")

        if self.tracker_team_created:
            report.manual_cleanup.append(
                f"team {self.tracker_team_created} (cannot be deleted via the API)"
            )
            logger.warning(
                f"Team {self.tracker_team_created} was created but cannot be deleted via the API"
            )

        return report
