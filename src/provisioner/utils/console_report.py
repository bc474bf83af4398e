"""Rich console rendering of run results and rollback reports."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.pipeline_state import ProvisioningResult
from ..models.rollback_state import RollbackReport


def render_result(console: Console, result: ProvisioningResult) -> None:
    """Print the summary table for a successful run."""
    table = Table(title=f"Provisioned {result.app_name}", show_header=False, border_style="green")
    table.add_column("Resource", style="bold")
    table.add_column("Value")

    table.add_row("Workspace", str(result.workspace_directory or "-"))
    table.add_row("Remote", result.remote_url or "-")
    if result.ticketing_skipped:
        table.add_row("Tracker", "[yellow]skipped[/yellow]")
    else:
        table.add_row("Team", result.group_id or "-")
        table.add_row("Project", result.container_id or "-")
        table.add_row("Issues created", str(len(result.created_issue_ids)))
        table.add_row("Labels created", str(len(result.created_label_ids)))
        table.add_row("Started", result.started_item or "-")
    table.add_row("Site", result.site_id or "-")
    if result.backup_path:
        table.add_row("Backup", str(result.backup_path))

    console.print(table)


def render_rollback_report(console: Console, report: RollbackReport, error: BaseException) -> None:
    """Print the original error, what rollback cleaned, and what needs manual cleanup."""
    console.print(Panel.fit(
        f"[bold red]Provisioning failed[/bold red]\n{type(error).__name__}: {error}",
        border_style="red",
    ))

    for description in report.cleaned:
        console.print(f"  [green]✓[/green] Rolled back {description}")
    for description, reason in report.failures:
        console.print(f"  [red]✗[/red] Could not roll back {description}: {reason}")

    if report.manual_cleanup:
        console.print("\n[bold yellow]Manual cleanup required:[/bold yellow]")
        for item in report.manual_cleanup:
            console.print(f"  - {item}")
    else:
        console.print("\n[green]Rollback completed, nothing left to clean up[/green]")
