"""
Work Item Graph Phase.

Creates work items in the issue tracker and wires their dependencies:
1. Reuse items already in the container (case-insensitive title match)
2. Create missing labels and items, strictly in input order
3. Second pass: one "blocks" relation per resolved dependency edge
4. Select (and optionally start) the single most urgent unblocked item

Per-label and per-item failures are logged and skipped; an item that could
not be created is simply absent from `ids_by_title`.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..clients.protocols import IssueTracker
from ..models.rollback_state import RollbackState
from ..models.tracker_models import ItemFilter, ItemInput, ItemPatch, LabelInput, RelationKind
from ..models.work_item import WorkItem
from ..utils.rate_limiter import Pacer
from ..utils.resilient_caller import ResilientCaller
from .dependency_resolver import find_cycles

logger = logging.getLogger(__name__)

STARTED_STATE = "started"


@dataclass
class GraphBuildResult:
    """Outcome of WorkItemGraphBuilder.create_all."""

    ids_by_title: dict[str, str] = field(default_factory=dict)
    created_ids: list[str] = field(default_factory=list)
    created_label_ids: list[str] = field(default_factory=list)
    relations: list[tuple[str, str]] = field(default_factory=list)  # (blocker_id, blocked_id)
    first_unblocked: Optional[WorkItem] = None
    started_id: Optional[str] = None
    failed_titles: list[str] = field(default_factory=list)


def select_first_unblocked(
    items: list[WorkItem],
    ids_by_title: Optional[dict[str, str]] = None,
) -> Optional[WorkItem]:
    """
    Most urgent item without dependencies (lowest priority ordinal).

    Ties go to the earliest item in the list. When `ids_by_title` is given,
    only items that exist in the tracker are considered.
    """
    candidates = [
        item for item in items
        if not item.dependencies and (ids_by_title is None or item.title in ids_by_title)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda item: int(item.priority))


class WorkItemGraphBuilder:
    """Creates work items and their blocking relations in the tracker."""

    def __init__(
        self,
        tracker: IssueTracker,
        caller: ResilientCaller,
        pacer: Optional[Pacer] = None,
        rollback: Optional[RollbackState] = None,
        auto_start: bool = False,
    ):
        """
        Initialize builder.

        Args:
            tracker: Issue tracker client
            caller: Retry policy wrapping every tracker call
            pacer: Spacing between bulk writes (labels, items, relations)
            rollback: Run state receiving each created issue/label with its compensation
            auto_start: Move the first unblocked item to the started state
        """
        self.tracker = tracker
        self.caller = caller
        self.pacer = pacer
        self.rollback = rollback
        self.auto_start = auto_start
        self._label_cache: dict[str, str] = {}

    def create_all(self, items: list[WorkItem], container_id: str, group_id: str) -> GraphBuildResult:
        """
        Create or reuse every item, then wire dependency relations.

        Args:
            items: Work items with dependencies already resolved
            container_id: Container receiving new items
            group_id: Group owning items and labels

        Returns:
            GraphBuildResult with title -> id map and created ids

        Raises:
            Exception: Only if listing the container's existing items fails
        """
        result = GraphBuildResult()
        self._label_cache = {}

        existing = self.caller.call(
            lambda: self.tracker.list_items(ItemFilter(container_id=container_id))
        )
        existing_by_title: dict[str, str] = {}
        for tracker_item in existing:
            existing_by_title.setdefault(tracker_item.title.lower(), tracker_item.id)

        logger.info(f"Creating {len(items)} work item(s), {len(existing)} already in container",
                    extra={"container_id": container_id})

        for item in items:
            if item.title in result.ids_by_title:
                logger.warning(f"Duplicate title '{item.title}' in batch, keeping the first item",
                               extra={"title": item.title, "correlation_id": item.correlation_id})
                continue

            existing_id = existing_by_title.get(item.title.lower())
            if existing_id:
                item.id = existing_id
                result.ids_by_title[item.title] = existing_id
                logger.info(f"Reusing existing item '{item.title}'",
                            extra={"title": item.title, "resource_id": existing_id})
                continue

            item_id = self._create_item(item, container_id, group_id, result)
            if item_id:
                item.id = item_id
                result.ids_by_title[item.title] = item_id
            else:
                result.failed_titles.append(item.title)

        result.relations = self.wire_relations(items, result.ids_by_title)
        result.first_unblocked = select_first_unblocked(items, result.ids_by_title)

        if self.auto_start:
            result.started_id = self.start_first_unblocked(items, result.ids_by_title)

        logger.info(
            f"Work items ready: {len(result.created_ids)} created, "
            f"{len(result.ids_by_title) - len(result.created_ids)} reused, "
            f"{len(result.failed_titles)} failed, {len(result.relations)} relation(s)"
        )
        return result

    def wire_relations(self, items: list[WorkItem], ids_by_title: dict[str, str]) -> list[tuple[str, str]]:
        """
        Create one "blocks" relation per resolvable dependency edge.

        Edges whose dependency title is not in `ids_by_title` are skipped.
        Cycles are reported as warnings and still wired.

        Returns:
            (blocker_id, blocked_id) pairs that were created
        """
        for cycle in find_cycles(items):
            logger.warning(f"Dependency cycle detected: {' -> '.join(cycle)}")

        relations: list[tuple[str, str]] = []
        wired_titles: set[str] = set()

        for item in items:
            if not item.dependencies or item.title in wired_titles:
                continue
            wired_titles.add(item.title)

            blocked_id = ids_by_title.get(item.title)
            if not blocked_id:
                logger.warning(f"Item '{item.title}' was not created, skipping its dependencies",
                               extra={"title": item.title})
                continue

            for dependency in item.dependencies:
                blocker_id = ids_by_title.get(dependency)
                if not blocker_id:
                    logger.warning(f"Dependency '{dependency}' of '{item.title}' not found, skipping relation",
                                   extra={"title": item.title})
                    continue
                if blocker_id == blocked_id:
                    logger.warning(f"Item '{item.title}' depends on itself, skipping relation",
                                   extra={"title": item.title})
                    continue

                self._wait()
                try:
                    self.caller.call(
                        lambda: self.tracker.create_relation(blocker_id, blocked_id, RelationKind.BLOCKS)
                    )
                except Exception as e:
                    logger.warning(f"Could not link '{dependency}' -> '{item.title}': {e}",
                                   extra={"title": item.title})
                    continue

                relations.append((blocker_id, blocked_id))
                logger.debug(f"'{dependency}' blocks '{item.title}'")

        return relations

    def start_first_unblocked(self, items: list[WorkItem], ids_by_title: dict[str, str]) -> Optional[str]:
        """
        Move the first unblocked item to the started state.

        Returns:
            Id of the started item, or None if nothing was started
        """
        first = select_first_unblocked(items, ids_by_title)
        if first is None:
            logger.info("No unblocked item to start")
            return None

        item_id = ids_by_title[first.title]
        try:
            self.caller.call(lambda: self.tracker.update_item(item_id, ItemPatch(state_type=STARTED_STATE)))
        except Exception as e:
            logger.warning(f"Could not start '{first.title}': {e}", extra={"resource_id": item_id})
            return None

        logger.info(f"Started '{first.title}'", extra={"title": first.title, "resource_id": item_id})
        return item_id

    def _create_item(
        self,
        item: WorkItem,
        container_id: str,
        group_id: str,
        result: GraphBuildResult,
    ) -> Optional[str]:
        label_ids = []
        for name in item.unique_labels():
            label_id = self._resolve_label(name, group_id, result)
            if label_id:
                label_ids.append(label_id)

        data = ItemInput(
            title=item.title,
            description=item.tracker_description(),
            priority=int(item.priority),
            group_id=group_id,
            container_id=container_id,
            label_ids=label_ids,
        )

        self._wait()
        try:
            created = self.caller.call(lambda: self.tracker.create_item(data))
        except Exception as e:
            logger.warning(
                f"Could not create item '{item.title}': {e}",
                extra={"title": item.title, "correlation_id": item.correlation_id},
            )
            return None

        result.created_ids.append(created.id)
        if self.rollback is not None:
            self.rollback.record_issue(created.id, undo=self._undo_item(created.id))

        logger.info(
            f"Created item '{item.title}'",
            extra={"title": item.title, "resource_id": created.id, "correlation_id": item.correlation_id},
        )
        return created.id

    def _resolve_label(self, name: str, group_id: str, result: GraphBuildResult) -> Optional[str]:
        """Find a label by name (then by capitalised name) or create it."""
        if name in self._label_cache:
            return self._label_cache[name]

        candidates = [name]
        if name.capitalize() != name:
            candidates.append(name.capitalize())

        try:
            for candidate in candidates:
                found = self.caller.call(lambda: self.tracker.list_labels(group_id, name=candidate))
                if found:
                    self._label_cache[name] = found[0].id
                    return found[0].id

            self._wait()
            created = self.caller.call(lambda: self.tracker.create_label(LabelInput(name=name, group_id=group_id)))
        except Exception as e:
            logger.warning(f"Could not resolve label '{name}': {e}")
            return None

        result.created_label_ids.append(created.id)
        if self.rollback is not None:
            self.rollback.record_label(created.id, undo=self._undo_label(created.id))

        self._label_cache[name] = created.id
        logger.info(f"Created label '{name}'", extra={"resource_id": created.id})
        return created.id

    def _undo_item(self, item_id: str):
        return lambda: self.caller.call(lambda: self.tracker.delete_item(item_id))

    def _undo_label(self, label_id: str):
        return lambda: self.caller.call(lambda: self.tracker.delete_label(label_id))

    def _wait(self) -> None:
        if self.pacer is not None:
            self.pacer.wait()
