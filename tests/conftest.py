"""Shared fixtures: an in-memory issue tracker and a retry policy that never sleeps."""

import itertools
from typing import Optional

import pytest

from provisioner.errors import TrackerAPIError
from provisioner.models import (
    ContainerInput,
    ContainerPatch,
    GroupInput,
    ItemFilter,
    ItemInput,
    ItemPatch,
    LabelInput,
    RelationKind,
    TrackerContainer,
    TrackerGroup,
    TrackerItem,
    TrackerLabel,
)
from provisioner.utils import ResilientCaller


class FakeTracker:
    """
    In-memory IssueTracker.

    Every call is recorded in `calls` as (method, args). Failures are
    injected per method with `fail_next` (count) or `always_fail`, and per
    item title with `fail_titles`.
    """

    def __init__(self):
        self.groups: dict[str, TrackerGroup] = {}
        self.containers: dict[str, TrackerContainer] = {}
        self.container_groups: dict[str, str] = {}
        self.items: dict[str, TrackerItem] = {}
        self.item_groups: dict[str, str] = {}
        self.labels: dict[str, TrackerLabel] = {}
        self.relations: list[tuple[str, str, RelationKind]] = []
        self.calls: list[tuple[str, tuple]] = []

        self.fail_next: dict[str, int] = {}
        self.always_fail: set[str] = set()
        self.fail_titles: set[str] = set()
        self._ids = itertools.count(1)

    # Test helpers

    def add_group(self, name: str, group_id: Optional[str] = None) -> TrackerGroup:
        group = TrackerGroup(id=group_id or self._new_id("team"), name=name)
        self.groups[group.id] = group
        return group

    def add_container(self, name: str, group_id: str) -> TrackerContainer:
        container = TrackerContainer(id=self._new_id("project"), name=name)
        self.containers[container.id] = container
        self.container_groups[container.id] = group_id
        return container

    def add_item(
        self,
        title: str,
        group_id: str,
        container_id: Optional[str] = None,
        labels: tuple[str, ...] = (),
        priority: int = 0,
        state: Optional[str] = None,
    ) -> TrackerItem:
        item = TrackerItem(
            id=self._new_id("issue"),
            title=title,
            priority=priority,
            labels=list(labels),
            container_id=container_id,
            state=state,
        )
        self.items[item.id] = item
        self.item_groups[item.id] = group_id
        return item

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def args_of(self, method: str) -> list[tuple]:
        return [args for name, args in self.calls if name == method]

    def container_named(self, name: str) -> Optional[TrackerContainer]:
        for container in self.containers.values():
            if container.name == name:
                return container
        return None

    # IssueTracker

    def get_group(self, group_id: str) -> TrackerGroup:
        self._record("get_group", group_id)
        if group_id not in self.groups:
            raise TrackerAPIError(f"Team not found: {group_id}", status_code=404)
        return self.groups[group_id]

    def create_group(self, data: GroupInput) -> TrackerGroup:
        self._record("create_group", data)
        return self.add_group(data.name)

    def list_items(self, item_filter: ItemFilter) -> list[TrackerItem]:
        self._record("list_items", item_filter)
        result = []
        for item in self.items.values():
            if item_filter.group_id and self.item_groups[item.id] != item_filter.group_id:
                continue
            if item_filter.container_id and item.container_id != item_filter.container_id:
                continue
            if item_filter.no_container and item.container_id is not None:
                continue
            result.append(item)
        return result[: item_filter.limit]

    def create_item(self, data: ItemInput) -> TrackerItem:
        self._record("create_item", data)
        if data.title in self.fail_titles:
            raise TrackerAPIError(f"Cannot create '{data.title}'", status_code=400)
        item = self.add_item(
            data.title,
            data.group_id,
            container_id=data.container_id,
            labels=tuple(self.labels[label_id].name for label_id in data.label_ids),
            priority=data.priority,
        )
        item.description = data.description
        return item

    def update_item(self, item_id: str, patch: ItemPatch) -> TrackerItem:
        self._record("update_item", item_id, patch)
        item = self.items[item_id]
        if patch.container_id:
            item.container_id = patch.container_id
        if patch.state_type:
            item.state = patch.state_type
        return item

    def delete_item(self, item_id: str) -> None:
        self._record("delete_item", item_id)
        del self.items[item_id]

    def list_labels(self, group_id: str, name: Optional[str] = None) -> list[TrackerLabel]:
        self._record("list_labels", group_id, name)
        return [
            label for label in self.labels.values()
            if label.group_id == group_id and (name is None or label.name == name)
        ]

    def create_label(self, data: LabelInput) -> TrackerLabel:
        self._record("create_label", data)
        label = TrackerLabel(id=self._new_id("label"), name=data.name, group_id=data.group_id)
        self.labels[label.id] = label
        return label

    def delete_label(self, label_id: str) -> None:
        self._record("delete_label", label_id)
        del self.labels[label_id]

    def create_relation(self, from_id: str, to_id: str, kind: RelationKind) -> None:
        self._record("create_relation", from_id, to_id, kind)
        self.relations.append((from_id, to_id, kind))

    def list_containers(self, group_id: str) -> list[TrackerContainer]:
        self._record("list_containers", group_id)
        return [c for c in self.containers.values() if self.container_groups[c.id] == group_id]

    def get_container(self, container_id: str) -> TrackerContainer:
        self._record("get_container", container_id)
        if container_id not in self.containers:
            raise TrackerAPIError(f"Project not found: {container_id}", status_code=404)
        return self.containers[container_id]

    def create_container(self, data: ContainerInput) -> TrackerContainer:
        self._record("create_container", data)
        return self.add_container(data.name, data.group_id)

    def update_container(self, container_id: str, patch: ContainerPatch) -> TrackerContainer:
        self._record("update_container", container_id, patch)
        container = self.containers[container_id]
        if patch.name:
            container.name = patch.name
        if patch.state:
            container.state = patch.state
        return container

    # Internals

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, args))
        if method in self.always_fail:
            raise TrackerAPIError(f"{method} failed", status_code=503)
        if self.fail_next.get(method, 0) > 0:
            self.fail_next[method] -= 1
            raise TrackerAPIError(f"{method} failed", status_code=503)


@pytest.fixture
def tracker() -> FakeTracker:
    """Fake tracker seeded with one team ("team-1", "Mobile Team")."""
    fake = FakeTracker()
    fake.add_group("Mobile Team", group_id="team-1")
    return fake


@pytest.fixture
def sleeps() -> list[float]:
    """Seconds passed to the caller's sleep function."""
    return []


@pytest.fixture
def caller(sleeps) -> ResilientCaller:
    """Default retry policy that records sleeps instead of sleeping."""
    return ResilientCaller(sleep=sleeps.append)
