"""Default work-item template for a freshly provisioned application."""

import re
from typing import Optional

from ..models.work_item import Category, Complexity, Priority, WorkItem


def repo_label_for(group_name: str, owner: Optional[str] = None) -> str:
    """
    Repository label attached to every default item, e.g. `acme/mobile-team`.

    Agents working the tracker use it to find the repository for an item.
    """
    slug = re.sub(r"\s+", "-", group_name.strip().lower())
    return f"{owner}/{slug}" if owner else slug


def default_work_items(repo_label: Optional[str] = None) -> list[WorkItem]:
    """The six starter items, without dependencies (see DependencyResolver)."""
    extra = [repo_label] if repo_label else []

    return [
        WorkItem(
            title="Setup Development Environment",
            description="Configure local development environment with Laravel backend and React frontend",
            priority=Priority.URGENT,
            labels=["setup", "development", *extra],
            category=Category.INFRASTRUCTURE,
            complexity=Complexity.LOW,
        ),
        WorkItem(
            title="Setup Database Schema",
            description="Create and run database migrations",
            priority=Priority.HIGH,
            labels=["database", "backend", *extra],
            category=Category.BACKEND,
            complexity=Complexity.MEDIUM,
        ),
        WorkItem(
            title="Implement Authentication System",
            description="Create Sanctum-based authentication with login, registration, and password reset",
            priority=Priority.MEDIUM,
            labels=["auth", "backend", "frontend", *extra],
            category=Category.BACKEND,
            complexity=Complexity.HIGH,
        ),
        WorkItem(
            title="Build Dashboard Page",
            description="Create dashboard with basic stats and navigation",
            priority=Priority.LOW,
            labels=["frontend", "dashboard", *extra],
            category=Category.FRONTEND,
            complexity=Complexity.MEDIUM,
        ),
        WorkItem(
            title="Implement Profile Management",
            description="Add profile management with photo upload functionality",
            priority=Priority.LOW,
            labels=["profile", "upload", "frontend", *extra],
            category=Category.FRONTEND,
            complexity=Complexity.HIGH,
        ),
        WorkItem(
            title="Configure Build Pipeline",
            description="Setup Vite build configuration and deployment pipeline",
            priority=Priority.LOW,
            labels=["build", "deployment", *extra],
            category=Category.DEPLOYMENT,
            complexity=Complexity.MEDIUM,
        ),
    ]
