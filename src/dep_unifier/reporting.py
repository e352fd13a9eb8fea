"""
Reporting and output formatting for workspace check results.

Provides color-coded console output using Rich library and a JSON payload
for automation.
"""

from typing import Any, Dict, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .analyzer import WORKSPACE_SOURCE, WorkspaceCheckResult


def result_to_dict(result: WorkspaceCheckResult) -> Dict[str, Any]:
    """Convert a check result into a JSON-serializable dictionary."""
    return {
        "root": result.root,
        "manifest": result.manifest_path,
        "has_workspace": result.has_workspace,
        "members": list(result.members),
        "duplicates": result.analysis.sorted_duplicates(),
        "occurrences": {
            name: list(sources)
            for name, sources in result.analysis.occurrences.items()
        },
        "check_duration_ms": result.check_duration_ms,
    }


class DuplicateReporter:
    """Formats and displays duplicate dependency results."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_check_results(
        self, result: WorkspaceCheckResult, verbose: bool = False
    ) -> None:
        """
        Print check results in a user-friendly format.

        Args:
            result: The check result to display
            verbose: Also list the resolved members
        """
        self.console.print(
            f"{escape(result.manifest_path)} found", style="dim", soft_wrap=True
        )

        if not result.has_workspace:
            self.console.print("ℹ️  No workspace found", style="yellow")
            return

        if verbose:
            self._print_members(result)

        if result.has_duplicates:
            self._print_duplicates(result)
            self._print_recommendations(result)
        else:
            self.console.print("✅ No duplicate dependencies found", style="green")

        self._print_footer(result)

    def _print_members(self, result: WorkspaceCheckResult) -> None:
        self.console.print(
            f"📦 {len(result.members)} member(s) declare dependencies:", style="blue"
        )
        for member in result.members:
            self.console.print(f"  • {escape(member)}")

    def _print_duplicates(self, result: WorkspaceCheckResult) -> None:
        self.console.print("🚨 Duplicate dependencies found", style="bold red")

        table = Table(box=box.ROUNDED, title_style="bold cyan")
        table.add_column("Dependency", style="bold")
        table.add_column("Pins", justify="center")
        table.add_column("Declared In")

        for name in result.analysis.sorted_duplicates():
            sources = result.analysis.occurrences.get(name, [])
            table.add_row(
                escape(name),
                str(len(sources)),
                ", ".join(
                    f"[cyan]{escape(source)}[/cyan]"
                    if source == WORKSPACE_SOURCE
                    else escape(source)
                    for source in sources
                ),
            )

        self.console.print(table)

    def _print_recommendations(self, result: WorkspaceCheckResult) -> None:
        names = result.analysis.sorted_duplicates()
        example = names[0]
        text = (
            "Declare each dependency once under [bold]\\[workspace.dependencies][/bold] "
            "and reference it from members with:\n\n"
            f"  {example} = {{ workspace = true }}"
        )
        self.console.print(
            Panel(text, title="💡 Recommendation", border_style="yellow")
        )

    def _print_footer(self, result: WorkspaceCheckResult) -> None:
        self.console.print(
            f"Checked {len(result.members)} member(s) in {result.check_duration_ms}ms",
            style="dim",
        )
