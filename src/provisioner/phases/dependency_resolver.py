"""
Dependency Resolution Phase.

Assigns dependency titles to a flat list of work items using either:
1. A static rule table (deterministic, offline, always succeeds)
2. The completion service (JSON array of {title, dependencies})

Inference failures of any kind fall back to the rule table for the whole
batch. Dependency graphs are not required to be acyclic; `find_cycles`
reports cycles so callers can warn about them.
"""

import json
import re
import logging
from typing import Any, Optional

from ..clients.protocols import CompletionService
from ..errors import CompletionError
from ..models.work_item import WorkItem
from ..prompts.dependency_prompt import build_dependency_prompt
from ..utils.resilient_caller import ResilientCaller

logger = logging.getLogger(__name__)

# Title -> titles that must be completed first
DEFAULT_DEPENDENCY_RULES: dict[str, list[str]] = {
    "Setup Development Environment": [],
    "Setup Database Schema": ["Setup Development Environment"],
    "Implement Authentication System": ["Setup Database Schema"],
    "Build Dashboard Page": ["Implement Authentication System"],
    "Implement Profile Management": ["Build Dashboard Page"],
    "Configure Build Pipeline": ["Implement Profile Management"],
}

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def parse_dependency_response(raw: str) -> dict[str, list[str]]:
    """
    Parse a completion response into a title -> dependencies map.

    Accepts a bare JSON array or one wrapped in a markdown code fence.
    When a title appears more than once the first entry wins.

    Args:
        raw: Response text from the completion service

    Returns:
        Mapping of task title to dependency titles

    Raises:
        CompletionError: If the response is not a JSON array of
            {"title": str, "dependencies": [str]} objects
    """
    text = raw.strip()
    fence = _CODE_FENCE.match(text)
    if fence:
        text = fence.group(1)

    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise CompletionError(f"Dependency response is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise CompletionError("Dependency response must be a JSON array")

    result: dict[str, list[str]] = {}
    for entry in data:
        if not isinstance(entry, dict) or not isinstance(entry.get("title"), str):
            raise CompletionError(f"Malformed dependency entry: {entry!r}")

        deps = entry.get("dependencies", [])
        if deps is None:
            deps = []
        if not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
            raise CompletionError(f"Malformed dependencies for '{entry['title']}': {deps!r}")

        result.setdefault(entry["title"], list(deps))

    return result


def find_cycles(items: list[WorkItem]) -> list[list[str]]:
    """
    Find dependency cycles among `items`.

    The graph is keyed by list index; each dependency title resolves to the
    first item carrying that title. Unresolved titles are ignored.

    Returns:
        One title list per cycle found, in dependency order
    """
    index_by_title: dict[str, int] = {}
    for idx, item in enumerate(items):
        index_by_title.setdefault(item.title, idx)

    edges = [
        [index_by_title[dep] for dep in item.dependencies if dep in index_by_title]
        for item in items
    ]

    unvisited, in_progress, done = 0, 1, 2
    state = [unvisited] * len(items)
    path: list[int] = []
    cycles: list[list[str]] = []

    def visit(node: int) -> None:
        state[node] = in_progress
        path.append(node)
        for nxt in edges[node]:
            if state[nxt] == in_progress:
                start = path.index(nxt)
                cycles.append([items[i].title for i in path[start:]])
            elif state[nxt] == unvisited:
                visit(nxt)
        path.pop()
        state[node] = done

    for node in range(len(items)):
        if state[node] == unvisited:
            visit(node)

    return cycles


class DependencyResolver:
    """Populates WorkItem.dependencies by rule table or by inference."""

    def __init__(
        self,
        completion: Optional[CompletionService] = None,
        caller: Optional[ResilientCaller] = None,
        rules: Optional[dict[str, list[str]]] = None,
    ):
        """
        Initialize resolver.

        Args:
            completion: Completion service for inference (optional)
            caller: Retry policy wrapping the completion call
            rules: Title -> dependencies table (defaults to DEFAULT_DEPENDENCY_RULES)
        """
        self.completion = completion
        self.caller = caller or ResilientCaller()
        self.rules = rules if rules is not None else DEFAULT_DEPENDENCY_RULES

    def resolve(self, items: list[WorkItem], use_inference: bool = False) -> list[WorkItem]:
        """
        Return copies of `items` with dependencies populated.

        Args:
            items: Work items (existing dependencies are replaced)
            use_inference: Ask the completion service instead of the rule table

        Returns:
            New WorkItem list in input order
        """
        if not use_inference:
            return self.resolve_with_rules(items)

        if self.completion is None:
            logger.warning("Dependency inference requested but no completion service configured, using rules")
            return self.resolve_with_rules(items)

        try:
            return self.resolve_with_inference(items)
        except Exception as e:
            logger.warning(f"Dependency inference failed, falling back to rules: {e}")
            return self.resolve_with_rules(items)

    def resolve_with_rules(self, items: list[WorkItem]) -> list[WorkItem]:
        """Apply the rule table; unknown titles get no dependencies."""
        logger.info(f"Resolving dependencies for {len(items)} item(s) with rules")
        return [item.with_dependencies(self.rules.get(item.title, [])) for item in items]

    def resolve_with_inference(self, items: list[WorkItem]) -> list[WorkItem]:
        """
        Ask the completion service for dependencies.

        Raises:
            CompletionError: If the response cannot be parsed
            Exception: Whatever the completion service raised on its final attempt
        """
        logger.info(f"Resolving dependencies for {len(items)} item(s) with inference")
        prompt = build_dependency_prompt(items)
        raw = self.caller.call(lambda: self.completion.complete(prompt))
        inferred = parse_dependency_response(raw)

        missing = [item.title for item in items if item.title not in inferred]
        if missing:
            logger.info(f"Inference returned no entry for {len(missing)} item(s): {', '.join(missing)}")

        return [item.with_dependencies(inferred.get(item.title, [])) for item in items]
