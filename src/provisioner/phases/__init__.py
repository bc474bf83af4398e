"""Provisioning pipeline phases."""

from .dependency_resolver import (
    DEFAULT_DEPENDENCY_RULES,
    DependencyResolver,
    find_cycles,
    parse_dependency_response,
)
from .templates import default_work_items, repo_label_for
from .work_item_graph import GraphBuildResult, WorkItemGraphBuilder, select_first_unblocked
from .orphan_reconciler import (
    OrphanReconciler,
    ReconcileReport,
    GroupSummary,
    container_name_for,
    TRIAGE_CONTAINER_NAME,
)
from .workspace_backup import WorkspaceBackup
from .deployment import DeploymentStep
from .scaffold import StarterScaffold, WorkItemDocsPublisher
from .orchestrator import ProvisioningOrchestrator

__all__ = [
    # Dependency resolution
    "DEFAULT_DEPENDENCY_RULES",
    "DependencyResolver",
    "find_cycles",
    "parse_dependency_response",
    "default_work_items",
    "repo_label_for",
    # Work item graph
    "GraphBuildResult",
    "WorkItemGraphBuilder",
    "select_first_unblocked",
    # Orphans
    "OrphanReconciler",
    "ReconcileReport",
    "GroupSummary",
    "container_name_for",
    "TRIAGE_CONTAINER_NAME",
    # Ticketing gate and deployment
    "WorkspaceBackup",
    "DeploymentStep",
    "StarterScaffold",
    "WorkItemDocsPublisher",
    # Orchestration
    "ProvisioningOrchestrator",
]
