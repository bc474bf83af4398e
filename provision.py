#!/usr/bin/env python3
"""
Provisioner - application workspace, tracker and deployment setup

Pipeline:
1. Local workspace
2. App scaffold
3. Publish to the code-hosting remote
4. Ticketing (Linear team/project, work items, dependencies, orphans)
5. Docs
6. Optional deployment (Laravel Forge)
7. Finalize

Any failure rolls back what the run created and re-raises the original error.

Usage:
    python3 provision.py --config config/provisioning.yaml
    python3 provision.py --config config/provisioning.yaml --yes --json-logs
    python3 provision.py --setup-existing-team TEAM_ID
"""

import argparse
import sys
import logging
from pathlib import Path
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from provisioner.clients import ForgeAPIClient, GitRemote, LinearAPIClient, OpenAICompletion
from provisioner.errors import ConfigError, ProvisioningError, UserCancelledError
from provisioner.phases import (
    DependencyResolver,
    OrphanReconciler,
    ProvisioningOrchestrator,
    StarterScaffold,
    WorkItemDocsPublisher,
    WorkItemGraphBuilder,
)
from provisioner.prompts import DEPENDENCY_SYSTEM_PROMPT
from provisioner.utils import (
    Pacer,
    ResilientCaller,
    load_config,
    load_secrets,
    render_result,
    render_rollback_report,
    setup_structured_logging,
)

console = Console()
logger = logging.getLogger(__name__)


def build_orchestrator(config, secrets, assume_yes: bool = False) -> ProvisioningOrchestrator:
    """Wire the concrete clients into an orchestrator."""
    tracker = None
    if config.tracker.enabled:
        if not secrets.linear_api_key:
            if config.tracker.required:
                raise ConfigError("LINEAR_API_KEY is required when tracker.required is set")
            console.print("  [yellow]⚠[/yellow] LINEAR_API_KEY not found - ticketing will be skipped")
        else:
            tracker = LinearAPIClient(secrets.linear_api_key)

    deployer = None
    if config.deploy.enabled:
        if secrets.forge_api_key:
            deployer = ForgeAPIClient(secrets.forge_api_key)
        else:
            console.print("  [yellow]⚠[/yellow] FORGE_API_KEY not found - deployment will be skipped")

    completion = None
    if config.tracker.ai_dependencies:
        if secrets.openai_api_key:
            completion = OpenAICompletion(
                api_key=secrets.openai_api_key,
                model=config.completion.model,
                temperature=config.completion.temperature,
                max_tokens=config.completion.max_tokens,
                base_url=secrets.openai_base_url,
                timeout=config.completion.timeout_s,
                system_prompt=DEPENDENCY_SYSTEM_PROMPT,
            )
        else:
            console.print("  [yellow]⚠[/yellow] OPENAI_API_KEY not found - using rule-based dependencies")

    def confirm(question: str) -> bool:
        if assume_yes:
            return True
        return Confirm.ask(question, console=console, default=False)

    return ProvisioningOrchestrator(
        config,
        tracker=tracker,
        code_host=GitRemote(config.workspace_path),
        deployer=deployer,
        completion=completion,
        scaffold=StarterScaffold(config.app.name, config.app.description),
        docs=WorkItemDocsPublisher(),
        confirm=confirm,
    )


def run_provisioning(config_path: Path, assume_yes: bool) -> int:
    """
    Run the full pipeline.

    Returns:
        Exit code (0 = success, 1 = failure, 130 = cancelled)
    """
    config = load_config(config_path)
    secrets = load_secrets()

    console.print(Panel.fit(
        f"[bold cyan]Provisioner[/bold cyan]\n"
        f"Application: {config.app.name}\n"
        f"Workspace: {config.workspace_path}",
        border_style="cyan",
    ))

    orchestrator = build_orchestrator(config, secrets, assume_yes=assume_yes)

    try:
        result = orchestrator.run()
    except (Exception, KeyboardInterrupt) as e:
        if orchestrator.last_report is not None:
            render_rollback_report(console, orchestrator.last_report, e)
        else:
            console.print(f"[red]✗ {type(e).__name__}: {e}[/red]")
        if isinstance(e, (UserCancelledError, KeyboardInterrupt)):
            return 130
        return 1

    render_result(console, result)
    console.print("\n[bold green]✓ Provisioning complete[/bold green]")
    return 0


def run_existing_team_setup(config_path: Path, team_id: str) -> int:
    """Wire dependencies and start one item per project of an existing team."""
    config = load_config(config_path)
    secrets = load_secrets()
    if not secrets.linear_api_key:
        raise ConfigError("LINEAR_API_KEY is required for --setup-existing-team")

    tracker = LinearAPIClient(secrets.linear_api_key)
    caller = ResilientCaller(
        max_attempts=config.retry.max_attempts,
        initial_delay_ms=config.retry.initial_delay_ms,
        backoff_multiplier=config.retry.backoff_multiplier,
    )
    pacer = Pacer(interval_ms=config.pacing.bulk_write_delay_ms)
    resolver = DependencyResolver(caller=caller)
    builder = WorkItemGraphBuilder(tracker, caller, pacer=pacer)
    reconciler = OrphanReconciler(tracker, caller, resolver, builder, pacer=pacer)

    started = reconciler.setup_existing_group(team_id)
    console.print(f"[green]✓[/green] Configured team {team_id}, started {len(started)} item(s)")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Provision an application workspace, tracker project and deployment"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(__file__).parent / "config" / "provisioning.yaml",
        help="Path to provisioning config (default: config/provisioning.yaml)",
    )
    parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Do not ask for confirmation before modifying an existing team",
    )
    parser.add_argument(
        "--setup-existing-team",
        metavar="TEAM_ID",
        help="Only wire dependencies in an existing team's projects",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON logs (for CI)",
    )

    args = parser.parse_args()

    env_file = Path(__file__).parent / ".env"
    if env_file.exists():
        load_dotenv(env_file)

    setup_structured_logging(args.log_level, json_output=args.json_logs, console=console)

    try:
        if args.setup_existing_team:
            exit_code = run_existing_team_setup(args.config, args.setup_existing_team)
        else:
            exit_code = run_provisioning(args.config, args.yes)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        exit_code = 1
    except ProvisioningError as e:
        console.print(f"[red]Error: {e}[/red]")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
