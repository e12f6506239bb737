"""Rich console output helpers for CLI commands."""

from typing import Any

from rich.console import Console
from rich.table import Table

from ghastoolkit.models.sarif import SarifResult, Severity

console = Console()

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
    Severity.INFO: "dim",
}


class ProgressPrinter:
    """Prints service progress events as one line each.

    CodeQL streams its own output to the terminal while it runs, so events
    are printed inline rather than through a live display.
    """

    DESCRIPTIONS = {
        "scan_started": "Creating CodeQL database...",
        "database_created": "✓ CodeQL database created",
        "analysis_completed": "✓ Analysis completed",
        "scan_completed": "✓ Scan completed",
    }

    def handle_progress(self, event: str, data: dict[str, Any]) -> None:
        """Handle a progress event from the service layer.

        Args:
            event: Event name
            data: Event data
        """
        description = self.DESCRIPTIONS.get(event, event)
        if event == "database_created" and data.get("lines_of_code"):
            description += f" ({data['lines_of_code']} lines of code)"
        console.print(f"[cyan]{description}[/cyan]")


def print_results_table(results: list[SarifResult], limit: int = 20) -> None:
    """Print results ordered by severity.

    Args:
        results: Parsed results
        limit: Maximum number of rows
    """
    ordered = sorted(results, key=lambda r: r.severity.rank)[:limit]
    table = Table(title=f"Results ({len(ordered)} of {len(results)})", show_lines=True)
    table.add_column("Severity", style="bold", width=10)
    table.add_column("Rule", style="yellow", width=40)
    table.add_column("Location", style="green")
    table.add_column("CWE", style="magenta", width=12)

    for result in ordered:
        style = SEVERITY_STYLES.get(result.severity, "")
        table.add_row(
            f"[{style}]{result.severity}[/{style}]" if style else str(result.severity),
            result.rule_id,
            result.location,
            ", ".join(cwe.id for cwe in result.cwes),
        )

    console.print(table)
    console.print()


def print_error(message: str) -> None:
    """Print an error message.

    Args:
        message: Error message
    """
    console.print(f"[red]✗ Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message.

    Args:
        message: Success message
    """
    console.print(f"[green]✓[/green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message.

    Args:
        message: Warning message
    """
    console.print(f"[yellow]⚠[/yellow]  {message}")


def print_info(message: str) -> None:
    """Print an info message.

    Args:
        message: Info message
    """
    console.print(f"[blue]ℹ[/blue]  {message}")
