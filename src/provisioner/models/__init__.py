"""Data models for work items, tracker resources, deployment and run state."""

from .work_item import WorkItem, Priority, Category, Complexity
from .tracker_models import (
    RelationKind,
    TrackerGroup,
    TrackerContainer,
    TrackerLabel,
    TrackerWorkflowState,
    TrackerItem,
    ItemFilter,
    ItemInput,
    ItemPatch,
    LabelInput,
    ContainerInput,
    ContainerPatch,
    GroupInput,
)
from .deployment_models import Server, Site, SiteInput
from .rollback_state import (
    RollbackState,
    RollbackReport,
    Compensation,
    CompensationRank,
)
from .pipeline_state import PipelineStep, PIPELINE_SEQUENCE, ProvisioningResult

__all__ = [
    # Work items
    "WorkItem",
    "Priority",
    "Category",
    "Complexity",
    # Tracker models
    "RelationKind",
    "TrackerGroup",
    "TrackerContainer",
    "TrackerLabel",
    "TrackerWorkflowState",
    "TrackerItem",
    "ItemFilter",
    "ItemInput",
    "ItemPatch",
    "LabelInput",
    "ContainerInput",
    "ContainerPatch",
    "GroupInput",
    # Deployment models
    "Server",
    "Site",
    "SiteInput",
    # Rollback
    "RollbackState",
    "RollbackReport",
    "Compensation",
    "CompensationRank",
    # Pipeline
    "PipelineStep",
    "PIPELINE_SEQUENCE",
    "ProvisioningResult",
]
