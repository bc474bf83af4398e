"""
Orphan Reconciliation Phase.

Housekeeping for items that have no container:
1. Route each orphan by its labels: a version label such as `v1.2` sends it
   to "Version 1.2", anything else to the triage container
2. Create missing target containers on first use
3. Re-run rule-based dependency wiring in every touched container and start
   its most urgent unblocked item
4. Move any orphan still left into the run's own container

Reconciliation never fails the run; every error is logged at warning level.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..clients.protocols import IssueTracker
from ..models.tracker_models import ContainerInput, ItemFilter, ItemPatch, TrackerContainer, TrackerItem
from ..models.work_item import Priority, WorkItem
from ..utils.rate_limiter import Pacer
from ..utils.resilient_caller import ResilientCaller
from .dependency_resolver import DependencyResolver
from .work_item_graph import STARTED_STATE, WorkItemGraphBuilder

logger = logging.getLogger(__name__)

VERSION_LABEL_PATTERN = re.compile(r"^v(\d+(?:\.\d+)?)$", re.IGNORECASE)
TRIAGE_CONTAINER_NAME = "Unassigned (to triage)"
CLOSED_STATES = frozenset({"completed", "canceled"})


def container_name_for(labels: list[str]) -> str:
    """Target container for an orphan with `labels`; the first version label wins."""
    for label in labels:
        match = VERSION_LABEL_PATTERN.match(label.strip())
        if match:
            return f"Version {match.group(1)}"
    return TRIAGE_CONTAINER_NAME


@dataclass
class ReconcileReport:
    """What a reconciliation pass changed."""

    moved: dict[str, str] = field(default_factory=dict)  # item id -> container name
    containers_created: list[str] = field(default_factory=list)
    reassigned: list[str] = field(default_factory=list)  # item ids moved to the fallback container
    started: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class GroupSummary:
    """Item counts per container for one group."""

    items_by_container: dict[str, int] = field(default_factory=dict)
    orphan_count: int = 0


class OrphanReconciler:
    """Buckets container-less items and re-wires the containers it touches."""

    def __init__(
        self,
        tracker: IssueTracker,
        caller: ResilientCaller,
        resolver: DependencyResolver,
        builder: WorkItemGraphBuilder,
        pacer: Optional[Pacer] = None,
    ):
        self.tracker = tracker
        self.caller = caller
        self.resolver = resolver
        self.builder = builder
        self.pacer = pacer

    def reconcile(self, group_id: str, fallback_container_id: Optional[str] = None) -> ReconcileReport:
        """
        Route every orphan in `group_id` to a version or triage container.

        Args:
            group_id: Group to scan
            fallback_container_id: Container for orphans that could not be routed

        Returns:
            ReconcileReport (never raises)
        """
        report = ReconcileReport()
        try:
            self._reconcile(group_id, fallback_container_id, report)
        except Exception as e:
            logger.warning(f"Orphan reconciliation aborted: {e}")
            report.errors.append(str(e))
        return report

    def summarize(self, group_id: str) -> Optional[GroupSummary]:
        """Log item counts per container and the orphan count (best effort)."""
        try:
            containers = self.caller.call(lambda: self.tracker.list_containers(group_id))
            items = self.caller.call(lambda: self.tracker.list_items(ItemFilter(group_id=group_id)))
        except Exception as e:
            logger.warning(f"Could not summarize group {group_id}: {e}")
            return None

        names = {c.id: c.name for c in containers}
        summary = GroupSummary(items_by_container={c.name: 0 for c in containers})
        for item in items:
            if item.container_id is None:
                summary.orphan_count += 1
                continue
            name = names.get(item.container_id, item.container_id)
            summary.items_by_container[name] = summary.items_by_container.get(name, 0) + 1

        for name, count in summary.items_by_container.items():
            logger.info(f"Project '{name}': {count} item(s)")
        logger.info(f"{summary.orphan_count} item(s) without a project")
        return summary

    def setup_existing_group(self, group_id: str) -> list[str]:
        """
        Wire rule-based relations in every container of an existing group.

        Returns:
            Ids of the items that were started (one per container at most)
        """
        try:
            containers = self.caller.call(lambda: self.tracker.list_containers(group_id))
        except Exception as e:
            logger.warning(f"Could not list projects for group {group_id}: {e}")
            return []

        logger.info(f"Setting up dependencies for {len(containers)} project(s)")
        report = ReconcileReport()
        for container in containers:
            self._wire_container(container.id, report)
        return report.started

    def _reconcile(self, group_id: str, fallback_container_id: Optional[str], report: ReconcileReport) -> None:
        orphans = self._list_orphans(group_id)
        if not orphans:
            logger.info("No orphan items found")
            return

        logger.info(f"Reconciling {len(orphans)} orphan item(s)")
        containers = self.caller.call(lambda: self.tracker.list_containers(group_id))
        by_name: dict[str, TrackerContainer] = {c.name.lower(): c for c in containers}
        touched: list[str] = []

        for orphan in orphans:
            name = container_name_for(orphan.labels)
            try:
                container = self._container_named(name, group_id, by_name, report)
                self._move(orphan, container.id)
            except Exception as e:
                logger.warning(f"Could not move '{orphan.title}' to '{name}': {e}",
                               extra={"resource_id": orphan.id})
                report.errors.append(f"{orphan.id}: {e}")
                continue

            report.moved[orphan.id] = container.name
            if container.id not in touched:
                touched.append(container.id)

        for container_id in touched:
            self._wire_container(container_id, report)

        if fallback_container_id:
            for orphan in self._list_orphans(group_id):
                try:
                    self._move(orphan, fallback_container_id)
                except Exception as e:
                    logger.warning(f"Could not reassign '{orphan.title}': {e}", extra={"resource_id": orphan.id})
                    report.errors.append(f"{orphan.id}: {e}")
                    continue
                report.reassigned.append(orphan.id)

        logger.info(
            f"Reconciled {len(report.moved)} orphan(s) into {len(touched)} project(s), "
            f"{len(report.reassigned)} reassigned"
        )

    def _list_orphans(self, group_id: str) -> list[TrackerItem]:
        return self.caller.call(
            lambda: self.tracker.list_items(ItemFilter(group_id=group_id, no_container=True))
        )

    def _container_named(
        self,
        name: str,
        group_id: str,
        by_name: dict[str, TrackerContainer],
        report: ReconcileReport,
    ) -> TrackerContainer:
        existing = by_name.get(name.lower())
        if existing:
            return existing

        self._wait()
        created = self.caller.call(
            lambda: self.tracker.create_container(ContainerInput(name=name, group_id=group_id))
        )
        by_name[name.lower()] = created
        report.containers_created.append(created.id)
        logger.info(f"Created project '{name}'", extra={"container_id": created.id})
        return created

    def _move(self, item: TrackerItem, container_id: str) -> None:
        self._wait()
        self.caller.call(lambda: self.tracker.update_item(item.id, ItemPatch(container_id=container_id)))
        logger.info(f"Moved '{item.title}'", extra={"resource_id": item.id, "container_id": container_id})

    def _wire_container(self, container_id: str, report: ReconcileReport) -> None:
        try:
            tracker_items = self.caller.call(
                lambda: self.tracker.list_items(ItemFilter(container_id=container_id))
            )
        except Exception as e:
            logger.warning(f"Could not list items of project {container_id}: {e}",
                           extra={"container_id": container_id})
            report.errors.append(f"{container_id}: {e}")
            return

        items = [
            WorkItem(
                title=t.title,
                description=t.description,
                priority=Priority.from_tracker(t.priority),
                labels=list(t.labels),
                id=t.id,
            )
            for t in tracker_items
        ]
        ids_by_title: dict[str, str] = {}
        for t in tracker_items:
            ids_by_title.setdefault(t.title, t.id)
        states_by_id = {t.id: t.state for t in tracker_items}

        resolved = self.resolver.resolve_with_rules(items)
        self.builder.wire_relations(resolved, ids_by_title)

        if any(t.state == STARTED_STATE for t in tracker_items):
            logger.info(f"Project {container_id} already has a started item", extra={"container_id": container_id})
            return

        open_ids = {
            title: item_id for title, item_id in ids_by_title.items()
            if states_by_id.get(item_id) not in CLOSED_STATES
        }
        started = self.builder.start_first_unblocked(resolved, open_ids)
        if started:
            report.started.append(started)

    def _wait(self) -> None:
        if self.pacer is not None:
            self.pacer.wait()
