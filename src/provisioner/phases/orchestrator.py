"""
Provisioning Orchestrator.

Drives the fixed pipeline for one application:

    Init -> LocalWorkspace -> AppScaffold -> PublishRemote -> TicketingSetup
         -> Docs -> OptionalDeploy -> Finalize -> Done

Docs are written after the initial push and go out as a second commit on
the same branch.

Every step records the resources it created in RollbackState together with
a compensating action. Any uncaught error (including a declined
confirmation or Ctrl+C) unwinds those compensations and re-raises the
original error; the rollback report is kept on `last_report`.
"""

import shutil
import time
import logging
from pathlib import Path
from typing import Callable, Optional

from ..clients.git_remote import normalize_remote_url, repository_slug
from ..clients.protocols import (
    CodeHost,
    CompletionService,
    DeploymentPlatform,
    DocsPublisher,
    IssueTracker,
    ScaffoldRenderer,
)
from ..errors import ProvisioningError
from ..models.pipeline_state import PIPELINE_SEQUENCE, PipelineStep, ProvisioningResult
from ..models.rollback_state import RollbackReport, RollbackState
from ..models.tracker_models import ContainerInput, ContainerPatch, GroupInput, TrackerContainer, TrackerGroup
from ..models.work_item import WorkItem
from ..utils.config_loader import ProvisioningConfig
from ..utils.rate_limiter import Pacer
from ..utils.resilient_caller import ResilientCaller
from .dependency_resolver import DependencyResolver
from .deployment import DeploymentStep
from .orphan_reconciler import OrphanReconciler
from .templates import default_work_items, repo_label_for
from .work_item_graph import WorkItemGraphBuilder
from .workspace_backup import WorkspaceBackup

logger = logging.getLogger(__name__)

ARCHIVED_CONTAINER_STATE = "canceled"


class ProvisioningOrchestrator:
    """Runs the provisioning pipeline once, rolling back on failure."""

    def __init__(
        self,
        config: ProvisioningConfig,
        tracker: Optional[IssueTracker] = None,
        code_host: Optional[CodeHost] = None,
        deployer: Optional[DeploymentPlatform] = None,
        completion: Optional[CompletionService] = None,
        scaffold: Optional[ScaffoldRenderer] = None,
        docs: Optional[DocsPublisher] = None,
        confirm: Callable[[str], bool] = lambda question: True,
        work_items: Optional[list[WorkItem]] = None,
        caller: Optional[ResilientCaller] = None,
        pacer: Optional[Pacer] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Provisioning configuration
            tracker: Issue tracker client (ticketing is skipped without one)
            code_host: Git client for the workspace (publishing is skipped without one)
            deployer: Deployment platform client
            completion: Completion service for dependency inference
            scaffold: Writes application boilerplate into the workspace
            docs: Writes documentation once work items are known
            confirm: Yes/no operator prompt used before ticketing mutations
            work_items: Items to create instead of the default template
            caller: Retry policy for every remote call (built from config if omitted)
            pacer: Spacing between bulk tracker writes (built from config if omitted)
        """
        self.config = config
        self.tracker = tracker
        self.code_host = code_host
        self.deployer = deployer
        self.scaffold = scaffold
        self.docs = docs
        self.confirm = confirm
        self.work_items = work_items

        self.caller = caller or ResilientCaller(
            max_attempts=config.retry.max_attempts,
            initial_delay_ms=config.retry.initial_delay_ms,
            backoff_multiplier=config.retry.backoff_multiplier,
        )
        self.pacer = pacer or Pacer(interval_ms=config.pacing.bulk_write_delay_ms)
        self.resolver = DependencyResolver(completion=completion, caller=self.caller)

        self.step = PipelineStep.INIT
        self.rollback = RollbackState()
        self.last_report: Optional[RollbackReport] = None

        self._handlers: dict[PipelineStep, Callable[[ProvisioningResult], None]] = {
            PipelineStep.LOCAL_WORKSPACE: self._create_workspace,
            PipelineStep.APP_SCAFFOLD: self._render_scaffold,
            PipelineStep.PUBLISH_REMOTE: self._publish_remote,
            PipelineStep.TICKETING_SETUP: self._setup_ticketing,
            PipelineStep.DOCS: self._publish_docs,
            PipelineStep.OPTIONAL_DEPLOY: self._deploy,
            PipelineStep.FINALIZE: self._finalize,
        }

    def run(self) -> ProvisioningResult:
        """
        Execute every pipeline step in order.

        Returns:
            ProvisioningResult describing what was created

        Raises:
            ProvisioningError: If this orchestrator already ran
            Exception: The original error of the failed step, after rollback
        """
        if self.step != PipelineStep.INIT:
            raise ProvisioningError(f"Orchestrator already ran (state: {self.step.value})")

        result = ProvisioningResult(app_name=self.config.app.name)
        logger.info(f"Provisioning {self.config.app.name}")

        try:
            for step in PIPELINE_SEQUENCE:
                self.step = step
                started = time.monotonic()
                logger.info(f"Step {step.value} started", extra={"step": step.value})

                self._handlers[step](result)

                result.steps_completed.append(step)
                duration_ms = int((time.monotonic() - started) * 1000)
                logger.info(f"Step {step.value} completed", extra={"step": step.value, "duration_ms": duration_ms})
        except (Exception, KeyboardInterrupt) as e:
            logger.error(f"Step {self.step.value} failed: {e}", extra={"step": self.step.value})
            self.last_report = self.rollback.unwind()
            self.step = PipelineStep.ROLLED_BACK
            raise

        self.step = PipelineStep.DONE
        self.rollback = RollbackState()
        return result

    # Steps

    def _create_workspace(self, result: ProvisioningResult) -> None:
        path = self.config.workspace_path
        if path.exists():
            raise ProvisioningError(f"Workspace directory already exists: {path}")

        path.mkdir(parents=True)
        self.rollback.record_workspace(path, undo=lambda: shutil.rmtree(path))
        result.workspace_directory = path
        logger.info(f"Created workspace {path}")

    def _render_scaffold(self, result: ProvisioningResult) -> None:
        if self.scaffold is None:
            logger.info("No scaffold renderer configured, skipping")
            return
        self.scaffold.render(result.workspace_directory)

    def _publish_remote(self, result: ProvisioningResult) -> None:
        code_host_config = self.config.code_host
        if self.code_host is None or not code_host_config.repo_url:
            logger.info("No repository URL configured, skipping publish")
            return

        url = normalize_remote_url(code_host_config.repo_url)

        self.code_host.init(code_host_config.branch)
        self.rollback.record_remote_initialized()
        self.code_host.commit_all(code_host_config.commit_message)

        self.code_host.add_remote(url)
        self.rollback.record_remote_added(undo=self.code_host.remove_remote)
        self.code_host.push(code_host_config.branch)

        result.remote_url = url

    def _setup_ticketing(self, result: ProvisioningResult) -> None:
        tracker_config = self.config.tracker
        if not tracker_config.enabled or self.tracker is None:
            logger.info("Issue tracker not configured, skipping ticketing")
            result.ticketing_skipped = True
            return

        try:
            group = self._select_group()
        except Exception as e:
            if tracker_config.required:
                raise
            logger.warning(f"Issue tracker unreachable, continuing without ticketing: {e}")
            result.ticketing_skipped = True
            return
        result.group_id = group.id

        if not tracker_config.create_new_team and tracker_config.confirm_before_mutation:
            backup = WorkspaceBackup(self.tracker, self.caller, tracker_config.backup_dir, self.confirm)
            result.backup_path = backup.run(group)

        container = self._select_container(group)
        result.container_id = container.id

        items = self.work_items if self.work_items is not None else default_work_items(
            repo_label_for(group.name, self._repository_owner())
        )
        resolved = self.resolver.resolve(items, use_inference=tracker_config.ai_dependencies)

        builder = WorkItemGraphBuilder(
            self.tracker,
            self.caller,
            pacer=self.pacer,
            rollback=self.rollback,
            auto_start=tracker_config.auto_start,
        )
        graph = builder.create_all(resolved, container.id, group.id)

        result.ids_by_title = dict(graph.ids_by_title)
        result.created_issue_ids = list(graph.created_ids)
        result.created_label_ids = list(graph.created_label_ids)
        if graph.started_id and graph.first_unblocked:
            result.started_item = graph.first_unblocked.title

        if tracker_config.reconcile_orphans:
            reconciler = OrphanReconciler(self.tracker, self.caller, self.resolver, builder, pacer=self.pacer)
            reconciler.summarize(group.id)
            reconciler.reconcile(group.id, fallback_container_id=container.id)

    def _publish_docs(self, result: ProvisioningResult) -> None:
        if self.docs is None:
            return
        self.docs.publish(result.workspace_directory, result.ids_by_title)

        if self.code_host is not None and result.remote_url:
            self.code_host.commit_all(self.config.code_host.docs_commit_message)
            self.code_host.push(self.config.code_host.branch)

    def _deploy(self, result: ProvisioningResult) -> None:
        deploy_config = self.config.deploy
        if not deploy_config.enabled or self.deployer is None:
            logger.info("Deployment not enabled, skipping")
            return

        step = DeploymentStep(self.deployer, self.caller, deploy_config, self.config.app.name)
        site = step.run(result.remote_url or self.config.code_host.repo_url, self.config.code_host.branch)
        if site is not None:
            result.site_id = site.id

    def _finalize(self, result: ProvisioningResult) -> None:
        if self.rollback.tracker_team_created:
            logger.info(f"Created team {self.rollback.tracker_team_created}")
        logger.info(
            f"Provisioned {result.app_name}: {len(result.created_issue_ids)} issue(s), "
            f"{len(result.created_label_ids)} label(s)"
        )

    # Tracker selection

    def _select_group(self) -> TrackerGroup:
        tracker_config = self.config.tracker
        if tracker_config.create_new_team:
            group = self.caller.call(lambda: self.tracker.create_group(
                GroupInput(name=tracker_config.new_team_name, description=self.config.app.description)
            ))
            self.rollback.record_team(group.id)
            logger.info(f"Created team '{group.name}'", extra={"resource_id": group.id})
            return group

        group = self.caller.call(lambda: self.tracker.get_group(tracker_config.team_id))
        logger.info(f"Using team '{group.name}'", extra={"resource_id": group.id})
        return group

    def _select_container(self, group: TrackerGroup) -> TrackerContainer:
        tracker_config = self.config.tracker
        if not tracker_config.create_new_project:
            return self.caller.call(lambda: self.tracker.get_container(tracker_config.project_id))

        data = ContainerInput(
            name=f"{self.config.app.name} - Development",
            group_id=group.id,
            description=self.config.app.description,
        )
        container = self.caller.call(lambda: self.tracker.create_container(data))
        self.rollback.record_project(container.id, undo=self._archive_container(container.id))
        logger.info(f"Created project '{container.name}'", extra={"container_id": container.id})
        return container

    def _archive_container(self, container_id: str) -> Callable[[], None]:
        patch = ContainerPatch(state=ARCHIVED_CONTAINER_STATE)
        return lambda: self.caller.call(lambda: self.tracker.update_container(container_id, patch))

    def _repository_owner(self) -> Optional[str]:
        repo_url = self.config.code_host.repo_url
        if not repo_url:
            return None
        try:
            return repository_slug(repo_url).split("/")[0]
        except ValueError:
            return None
