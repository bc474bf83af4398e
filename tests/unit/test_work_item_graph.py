"""Unit tests for WorkItemGraphBuilder."""

import logging

import pytest

from provisioner.models import Priority, RelationKind, RollbackState, TrackerLabel, WorkItem
from provisioner.phases import WorkItemGraphBuilder, select_first_unblocked


@pytest.fixture
def container(tracker):
    return tracker.add_container("demo - Development", "team-1")


@pytest.fixture
def builder(tracker, caller):
    return WorkItemGraphBuilder(tracker, caller)


def chain() -> list[WorkItem]:
    return [
        WorkItem(title="A", priority=Priority.HIGH),
        WorkItem(title="B", dependencies=["A"]),
        WorkItem(title="C", dependencies=["B"]),
    ]


class TestCreateAll:
    """Tests for item creation and reuse."""

    def test_existing_item_is_reused_not_duplicated(self, tracker, builder, container):
        """A pre-existing "Setup Environment" is reused (case-insensitive)."""
        existing = tracker.add_item("setup environment", "team-1", container_id=container.id)

        result = builder.create_all([WorkItem(title="Setup Environment")], container.id, "team-1")

        assert result.ids_by_title["Setup Environment"] == existing.id
        assert result.created_ids == []
        assert tracker.count("create_item") == 0

    def test_items_created_in_input_order(self, tracker, builder, container):
        items = [WorkItem(title="C", dependencies=["A"]), WorkItem(title="A"), WorkItem(title="B")]

        builder.create_all(items, container.id, "team-1")

        assert [args[0].title for args in tracker.args_of("create_item")] == ["C", "A", "B"]

    def test_item_payload(self, tracker, builder, container):
        item = WorkItem(title="B", description="Do B", priority=Priority.URGENT, dependencies=["A"])

        builder.create_all([item], container.id, "team-1")

        data = tracker.args_of("create_item")[0][0]
        assert data.priority == 1
        assert data.container_id == container.id
        assert data.group_id == "team-1"
        assert data.description == "Do B\n\n**Dependencies:** Must be completed after: A"

    def test_failed_item_is_skipped_and_batch_continues(self, tracker, builder, container):
        tracker.fail_titles.add("B")

        result = builder.create_all(chain(), container.id, "team-1")

        assert set(result.ids_by_title) == {"A", "C"}
        assert result.failed_titles == ["B"]
        assert tracker.count("create_item") == 2 + 3  # B retried up to the attempt budget
        assert tracker.relations == []

    def test_duplicate_titles_keep_first_item(self, tracker, builder, container, caplog):
        items = [WorkItem(title="A", description="first"), WorkItem(title="A", description="second")]

        with caplog.at_level(logging.WARNING):
            result = builder.create_all(items, container.id, "team-1")

        assert len(result.created_ids) == 1
        assert tracker.items[result.ids_by_title["A"]].description == "first"
        assert "Duplicate title" in caplog.text

    def test_creation_log_carries_correlation_id(self, builder, container, caplog):
        item = WorkItem(title="A")

        with caplog.at_level(logging.INFO):
            builder.create_all([item], container.id, "team-1")

        created = [r for r in caplog.records if r.getMessage() == "Created item 'A'"]
        assert len(created) == 1
        assert created[0].correlation_id == item.correlation_id


class TestLabels:
    """Tests for label resolution."""

    def test_missing_labels_created_once_and_reused(self, tracker, builder, container):
        items = [
            WorkItem(title="A", labels=["backend", "frontend"]),
            WorkItem(title="B", labels=["backend"]),
        ]

        result = builder.create_all(items, container.id, "team-1")

        assert tracker.count("create_label") == 2
        assert len(result.created_label_ids) == 2
        assert tracker.items[result.ids_by_title["B"]].labels == ["backend"]

    def test_existing_label_found_by_capitalised_name(self, tracker, builder, container):
        tracker.labels["label-x"] = TrackerLabel(id="label-x", name="Backend", group_id="team-1")

        result = builder.create_all([WorkItem(title="A", labels=["backend"])], container.id, "team-1")

        assert tracker.count("create_label") == 0
        assert result.created_label_ids == []
        assert tracker.args_of("create_item")[0][0].label_ids == ["label-x"]

    def test_label_failure_does_not_block_item(self, tracker, builder, container):
        tracker.always_fail.add("create_label")

        result = builder.create_all([WorkItem(title="A", labels=["backend"])], container.id, "team-1")

        assert "A" in result.ids_by_title
        assert tracker.args_of("create_item")[0][0].label_ids == []


class TestRelations:
    """Tests for dependency wiring."""

    def test_chain_wires_exactly_two_blocking_relations(self, tracker, builder, container):
        """A <- B <- C yields (A blocks B) and (B blocks C); A is first unblocked."""
        result = builder.create_all(chain(), container.id, "team-1")
        ids = result.ids_by_title

        assert tracker.relations == [
            (ids["A"], ids["B"], RelationKind.BLOCKS),
            (ids["B"], ids["C"], RelationKind.BLOCKS),
        ]
        assert result.relations == [(ids["A"], ids["B"]), (ids["B"], ids["C"])]
        assert result.first_unblocked.title == "A"

    def test_dependency_listed_later_still_resolves(self, tracker, builder, container):
        items = [WorkItem(title="B", dependencies=["A"]), WorkItem(title="A")]

        result = builder.create_all(items, container.id, "team-1")

        assert tracker.relations == [(result.ids_by_title["A"], result.ids_by_title["B"], RelationKind.BLOCKS)]

    def test_unresolved_dependency_is_non_fatal(self, tracker, builder, container):
        """An item depending on a nonexistent title is created with no relation for that edge."""
        result = builder.create_all(
            [WorkItem(title="B", dependencies=["Does Not Exist"])], container.id, "team-1"
        )

        assert "B" in result.ids_by_title
        assert tracker.count("create_relation") == 0

    def test_cycle_is_logged_and_still_wired(self, tracker, builder, container, caplog):
        items = [WorkItem(title="A", dependencies=["B"]), WorkItem(title="B", dependencies=["A"])]

        with caplog.at_level(logging.WARNING):
            builder.create_all(items, container.id, "team-1")

        assert "Dependency cycle detected: A -> B" in caplog.text
        assert tracker.count("create_relation") == 2

    def test_relation_failure_is_logged_not_raised(self, tracker, builder, container):
        tracker.always_fail.add("create_relation")

        result = builder.create_all(chain(), container.id, "team-1")

        assert result.relations == []
        assert len(result.ids_by_title) == 3


class TestStart:
    """Tests for first-unblocked selection and auto-start."""

    def test_select_prefers_lowest_priority_ordinal(self):
        items = [
            WorkItem(title="Low", priority=Priority.LOW),
            WorkItem(title="Urgent", priority=Priority.URGENT),
            WorkItem(title="Blocked", priority=Priority.URGENT, dependencies=["Low"]),
        ]

        assert select_first_unblocked(items).title == "Urgent"

    def test_ties_go_to_first_in_list(self):
        items = [WorkItem(title="X"), WorkItem(title="Y")]

        assert select_first_unblocked(items).title == "X"

    def test_auto_start_moves_only_one_item(self, tracker, caller, container):
        builder = WorkItemGraphBuilder(tracker, caller, auto_start=True)
        items = [WorkItem(title="A", priority=Priority.HIGH), WorkItem(title="D", priority=Priority.LOW)]

        result = builder.create_all(items, container.id, "team-1")

        started = [item for item in tracker.items.values() if item.state == "started"]
        assert [item.title for item in started] == ["A"]
        assert result.started_id == result.ids_by_title["A"]

    def test_without_auto_start_nothing_moves(self, tracker, builder, container):
        result = builder.create_all(chain(), container.id, "team-1")

        assert result.started_id is None
        assert tracker.count("update_item") == 0


class TestRollbackRecording:
    """Created issues and labels are recorded with working compensations."""

    def test_created_resources_recorded_and_undone(self, tracker, caller, container):
        rollback = RollbackState()
        builder = WorkItemGraphBuilder(tracker, caller, rollback=rollback)
        tracker.add_item("Existing", "team-1", container_id=container.id)
        items = [WorkItem(title="Existing"), WorkItem(title="New", labels=["ops"])]

        result = builder.create_all(items, container.id, "team-1")

        assert rollback.tracker_issues_created == result.created_ids
        assert rollback.tracker_labels_created == result.created_label_ids

        report = rollback.unwind()

        assert report.failures == []
        assert tracker.count("delete_item") == 1
        assert tracker.count("delete_label") == 1
        assert [item.title for item in tracker.items.values()] == ["Existing"]
