"""
Work item models for the ticketing stage.

Work items are built in memory (from the default template, a caller-supplied
list, or the completion service), created once in the issue tracker, and only
ever mutated locally to attach the returned tracker id.
"""

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Optional


class Priority(IntEnum):
    """Tracker priority ordinal. Lower value means more urgent."""

    URGENT = 1
    HIGH = 2
    MEDIUM = 3
    LOW = 4

    @classmethod
    def from_tracker(cls, value: Any) -> "Priority":
        """Map a raw tracker priority (0 = no priority) onto the ordinal scale."""
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.LOW


class Category(str, Enum):
    """Classification only, no behavioral effect."""

    INFRASTRUCTURE = "infrastructure"
    BACKEND = "backend"
    FRONTEND = "frontend"
    DEPLOYMENT = "deployment"
    GENERAL = "general"


class Complexity(str, Enum):
    """Classification only, no behavioral effect."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class WorkItem:
    """
    A unit of tracked work.

    `title` is the join key for dependency wiring and idempotent re-runs.
    `correlation_id` is local to one run and never sent to the tracker.
    """

    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    labels: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)  # Titles that must complete first
    category: Category = Category.GENERAL
    complexity: Complexity = Complexity.MEDIUM
    id: Optional[str] = None  # Tracker id, attached after creation
    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def with_dependencies(self, dependencies: list[str]) -> "WorkItem":
        """Copy of this item with its dependency list replaced."""
        return replace(self, dependencies=list(dependencies), labels=list(self.labels))

    def unique_labels(self) -> list[str]:
        """Labels in first-seen order with duplicates removed."""
        seen: set[str] = set()
        result = []
        for label in self.labels:
            if label and label not in seen:
                seen.add(label)
                result.append(label)
        return result

    def tracker_description(self) -> str:
        """Description as sent to the tracker, with the dependency note appended."""
        if not self.dependencies:
            return self.description
        deps = ", ".join(self.dependencies)
        return f"{self.description}\n\n**Dependencies:** Must be completed after: {deps}"
