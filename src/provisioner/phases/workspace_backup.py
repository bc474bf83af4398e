"""
Workspace backup before ticketing mutations.

Writes a JSON snapshot of the group's projects, issues and labels, then asks
the operator to confirm. The snapshot is best effort; declining the
confirmation raises UserCancelledError, which rolls the run back.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..clients.protocols import IssueTracker
from ..errors import UserCancelledError
from ..models.tracker_models import ItemFilter, TrackerGroup
from ..utils.resilient_caller import ResilientCaller

logger = logging.getLogger(__name__)

BACKUP_FILENAME = "backup.json"


class WorkspaceBackup:
    """Snapshot-then-confirm gate in front of tracker mutations."""

    def __init__(
        self,
        tracker: IssueTracker,
        caller: ResilientCaller,
        backup_dir: Path,
        confirm: Callable[[str], bool],
    ):
        """
        Args:
            tracker: Issue tracker client
            caller: Retry policy for the snapshot reads
            backup_dir: Parent directory of the per-run backup folders
            confirm: Asks the operator a yes/no question
        """
        self.tracker = tracker
        self.caller = caller
        self.backup_dir = Path(backup_dir)
        self.confirm = confirm

    def run(self, group: TrackerGroup) -> Optional[Path]:
        """
        Back up `group`, then require confirmation.

        Returns:
            Path of the written backup file, or None if the snapshot failed

        Raises:
            UserCancelledError: If the operator declines
        """
        path = self.snapshot(group)
        if path is None:
            question = f"Backup of team '{group.name}' failed. Continue modifying it anyway?"
        else:
            question = f"Backup written to {path}. Continue modifying team '{group.name}'?"

        if not self.confirm(question):
            raise UserCancelledError(f"Operator declined changes to team '{group.name}'")
        return path

    def snapshot(self, group: TrackerGroup) -> Optional[Path]:
        """Write the group snapshot; failures are logged and return None."""
        try:
            containers = self.caller.call(lambda: self.tracker.list_containers(group.id))
            items = self.caller.call(lambda: self.tracker.list_items(ItemFilter(group_id=group.id)))
            labels = self.caller.call(lambda: self.tracker.list_labels(group.id))

            timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
            folder = self.backup_dir / f"{group.name} - Pre-Provisioning - {timestamp}"
            folder.mkdir(parents=True, exist_ok=True)

            snapshot = {
                "created_at": datetime.now().isoformat(),
                "team": group.model_dump(mode="json"),
                "projects": [c.model_dump(mode="json") for c in containers],
                "issues": [i.model_dump(mode="json") for i in items],
                "labels": [label.model_dump(mode="json") for label in labels],
            }

            path = folder / BACKUP_FILENAME
            path.write_text(json.dumps(snapshot, indent=2, ensure_ascii=False), encoding="utf-8")
        except Exception as e:
            logger.warning(f"Could not back up team '{group.name}': {e}")
            return None

        logger.info(
            f"Backed up team '{group.name}': {len(containers)} project(s), "
            f"{len(items)} issue(s), {len(labels)} label(s) -> {path}"
        )
        return path
