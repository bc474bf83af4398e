"""Unit tests for dependency resolution, response parsing and cycle detection."""

import json
from unittest.mock import MagicMock

import pytest

from provisioner.errors import CompletionError
from provisioner.models import WorkItem
from provisioner.phases import (
    DEFAULT_DEPENDENCY_RULES,
    DependencyResolver,
    default_work_items,
    find_cycles,
    parse_dependency_response,
    repo_label_for,
)


def completion_returning(payload) -> MagicMock:
    completion = MagicMock()
    completion.complete.return_value = payload if isinstance(payload, str) else json.dumps(payload)
    return completion


class TestRuleBasedResolution:
    """Tests for the static rule table."""

    def test_default_items_get_chain_dependencies(self, caller):
        resolver = DependencyResolver(caller=caller)

        resolved = resolver.resolve(default_work_items("acme/mobile-team"))

        by_title = {item.title: item.dependencies for item in resolved}
        assert by_title == DEFAULT_DEPENDENCY_RULES

    def test_unknown_titles_get_no_dependencies(self, caller):
        resolver = DependencyResolver(caller=caller)

        resolved = resolver.resolve([WorkItem(title="Write Changelog", dependencies=["Stale"])])

        assert resolved[0].dependencies == []

    def test_input_items_are_not_mutated(self, caller):
        items = [WorkItem(title="Setup Database Schema")]
        resolver = DependencyResolver(caller=caller)

        resolved = resolver.resolve(items)

        assert items[0].dependencies == []
        assert resolved[0].dependencies == ["Setup Development Environment"]
        assert resolved[0].correlation_id == items[0].correlation_id


class TestInferenceResolution:
    """Tests for completion-service inference and its fallback."""

    def test_inferred_dependencies_map_by_exact_title(self, caller):
        items = [WorkItem(title="A"), WorkItem(title="B"), WorkItem(title="C")]
        completion = completion_returning([
            {"title": "B", "dependencies": ["A"]},
            {"title": "C", "dependencies": ["A", "B"]},
            {"title": "Unknown", "dependencies": ["A"]},
        ])
        resolver = DependencyResolver(completion=completion, caller=caller)

        resolved = resolver.resolve(items, use_inference=True)

        assert [item.dependencies for item in resolved] == [[], ["A"], ["A", "B"]]
        prompt = completion.complete.call_args[0][0]
        assert "1. A" in prompt and "3. C" in prompt

    def test_code_fenced_response_is_accepted(self, caller):
        completion = completion_returning('```json\n[{"title": "B", "dependencies": ["A"]}]\n```')
        resolver = DependencyResolver(completion=completion, caller=caller)

        resolved = resolver.resolve([WorkItem(title="B")], use_inference=True)

        assert resolved[0].dependencies == ["A"]

    def test_completion_failure_falls_back_to_rules(self, caller):
        """If the completion call throws, results equal the rule-based strategy."""
        items = default_work_items("acme/mobile-team")
        completion = MagicMock()
        completion.complete.side_effect = TimeoutError("timed out")
        resolver = DependencyResolver(completion=completion, caller=caller)

        resolved = resolver.resolve(items, use_inference=True)

        assert resolved == resolver.resolve_with_rules(items)
        assert completion.complete.call_count == 3

    @pytest.mark.parametrize("payload", [
        "not json at all",
        '{"title": "A"}',
        '[{"name": "A"}]',
        '[{"title": "A", "dependencies": "B"}]',
    ])
    def test_malformed_response_falls_back_to_rules(self, caller, payload):
        items = [WorkItem(title="Setup Database Schema")]
        resolver = DependencyResolver(completion=completion_returning(payload), caller=caller)

        resolved = resolver.resolve(items, use_inference=True)

        assert resolved == resolver.resolve_with_rules(items)

    def test_missing_completion_service_uses_rules(self, caller):
        resolver = DependencyResolver(completion=None, caller=caller)
        items = [WorkItem(title="Setup Database Schema")]

        assert resolver.resolve(items, use_inference=True) == resolver.resolve_with_rules(items)


class TestParseDependencyResponse:
    """Tests for parse_dependency_response."""

    def test_first_entry_wins_for_duplicate_titles(self):
        raw = json.dumps([
            {"title": "B", "dependencies": ["A"]},
            {"title": "B", "dependencies": ["C"]},
        ])

        assert parse_dependency_response(raw) == {"B": ["A"]}

    def test_null_dependencies_are_empty(self):
        assert parse_dependency_response('[{"title": "A", "dependencies": null}]') == {"A": []}

    def test_non_array_raises(self):
        with pytest.raises(CompletionError):
            parse_dependency_response('{"A": []}')


class TestFindCycles:
    """Tests for cycle detection."""

    def test_chain_has_no_cycles(self):
        items = [
            WorkItem(title="A"),
            WorkItem(title="B", dependencies=["A"]),
            WorkItem(title="C", dependencies=["B"]),
        ]

        assert find_cycles(items) == []

    def test_two_node_cycle(self):
        items = [
            WorkItem(title="A", dependencies=["B"]),
            WorkItem(title="B", dependencies=["A"]),
        ]

        assert find_cycles(items) == [["A", "B"]]

    def test_self_dependency_is_a_cycle(self):
        assert find_cycles([WorkItem(title="A", dependencies=["A"])]) == [["A"]]

    def test_unresolved_dependencies_are_ignored(self):
        assert find_cycles([WorkItem(title="A", dependencies=["Missing"])]) == []


class TestTemplates:
    """Tests for the default work-item template."""

    def test_repo_label_slugifies_group_name(self):
        assert repo_label_for("Mobile  Team", "acme") == "acme/mobile-team"
        assert repo_label_for("Mobile Team") == "mobile-team"

    def test_every_default_item_carries_repo_label(self):
        items = default_work_items("acme/mobile-team")

        assert len(items) == 6
        assert all("acme/mobile-team" in item.labels for item in items)
        assert items[0].title == "Setup Development Environment"
