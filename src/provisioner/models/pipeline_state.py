"""Pipeline step and result models."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class PipelineStep(str, Enum):
    """
    Provisioning pipeline states.

    The sequence is fixed and linear. ROLLED_BACK is reachable from any
    non-terminal state.
    """

    INIT = "init"
    LOCAL_WORKSPACE = "local_workspace"
    APP_SCAFFOLD = "app_scaffold"
    PUBLISH_REMOTE = "publish_remote"
    TICKETING_SETUP = "ticketing_setup"
    DOCS = "docs"
    OPTIONAL_DEPLOY = "optional_deploy"
    FINALIZE = "finalize"
    DONE = "done"
    ROLLED_BACK = "rolled_back"


PIPELINE_SEQUENCE: tuple[PipelineStep, ...] = (
    PipelineStep.LOCAL_WORKSPACE,
    PipelineStep.APP_SCAFFOLD,
    PipelineStep.PUBLISH_REMOTE,
    PipelineStep.TICKETING_SETUP,
    PipelineStep.DOCS,
    PipelineStep.OPTIONAL_DEPLOY,
    PipelineStep.FINALIZE,
)


@dataclass
class ProvisioningResult:
    """What a successful run produced."""

    app_name: str
    workspace_directory: Optional[Path] = None
    remote_url: Optional[str] = None
    group_id: Optional[str] = None
    container_id: Optional[str] = None
    ids_by_title: dict[str, str] = field(default_factory=dict)
    created_issue_ids: list[str] = field(default_factory=list)
    created_label_ids: list[str] = field(default_factory=list)
    started_item: Optional[str] = None
    site_id: Optional[str] = None
    backup_path: Optional[Path] = None
    ticketing_skipped: bool = False
    steps_completed: list[PipelineStep] = field(default_factory=list)
