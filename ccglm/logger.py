"""Rich console output for switch operations."""

import json
from typing import TYPE_CHECKING, Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from ccglm.backup import BackupRecord
    from ccglm.switcher import RestoreResult, SwitchResult

DRY_RUN_PREFIX = escape("[DRY RUN]")


class SwitchLogger:
    """Rich console output for switch operations."""

    def __init__(
        self,
        console: Optional[Console] = None,
        verbose: bool = False,
        err_console: Optional[Console] = None,
    ):
        """Initialize logger.

        Args:
            console: Rich Console instance
            verbose: Enable verbose output
            err_console: Console for errors (stderr by default)
        """
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)
        self.verbose = verbose

    def info(self, message: str) -> None:
        """Blue info message."""
        self.console.print(f"[blue]ℹ[/blue] {escape(message)}")

    def success(self, message: str) -> None:
        """Green success message."""
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def warning(self, message: str) -> None:
        """Yellow warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}")

    def error(self, message: str, hint: Optional[str] = None) -> None:
        """Red error message, with an optional remedy hint."""
        self.err_console.print(f"[red]✗ Error:[/red] {escape(message)}")
        if hint:
            self.err_console.print(f"  [dim]→ {escape(hint)}[/dim]")

    def debug(self, message: str) -> None:
        """Dim diagnostic message, shown only in verbose mode."""
        if self.verbose:
            self.console.print(f"[dim]· {escape(message)}[/dim]")

    def dry_run(self, message: str) -> None:
        """Message describing what a dry run would do."""
        self.console.print(f"[magenta]{DRY_RUN_PREFIX}[/magenta] {escape(message)}")

    def switch_result(self, result: "SwitchResult") -> None:
        """Display the outcome of a profile switch."""
        if not result.success:
            self.error(result.error or "Switch failed", result.hint)
            return

        target = result.target
        if result.dry_run:
            self.dry_run(f"Would switch to {target.label} ({target.value})")
            cleaned = " (profile keys stripped)" if result.backup_cleaned else ""
            self.dry_run(f"Would create backup {result.planned_backup}{cleaned}")
            for key in result.keys_added:
                self.dry_run(f"Would add env.{key}")
            for key in result.keys_changed:
                self.dry_run(f"Would update env.{key}")
            for key in result.keys_removed:
                self.dry_run(f"Would remove env.{key}")
            if not result.has_changes:
                self.dry_run("Settings already match the target profile")
            self.dry_run("No changes applied")
            return

        if result.backup is not None:
            self.info(f"Backup created: {result.backup.name}")
        for key in result.keys_added:
            self.debug(f"Added env.{key}")
        for key in result.keys_changed:
            self.debug(f"Updated env.{key}")
        for key in result.keys_removed:
            self.debug(f"Removed env.{key}")
        if result.pruned:
            self.info(f"Removed {len(result.pruned)} old backup(s)")
        self.success(f"Switched to {target.label} ({target.value})")

    def restore_result(self, result: "RestoreResult") -> None:
        """Display the outcome of a restore."""
        if not result.success:
            self.error(result.error or "Restore failed", result.hint)
            return

        restored = result.restored
        name = restored.name if restored is not None else f"#{result.index}"
        if result.dry_run:
            self.dry_run(f"Would restore {name}")
            if result.pre_restore_planned:
                self.dry_run("Would back up current settings first (before_restore)")
            elif result.pre_restore_skipped:
                self.dry_run(f"Would skip pre-restore backup: {result.pre_restore_skipped}")
            else:
                self.dry_run("No current settings to back up")
            self.dry_run("No changes applied")
            return

        if result.pre_restore is not None:
            self.info(f"Current settings saved as {result.pre_restore.name}")
        if result.pre_restore_skipped:
            self.warning(f"Pre-restore backup skipped: {result.pre_restore_skipped}")
        if result.pruned:
            self.info(f"Removed {len(result.pruned)} old backup(s)")
        self.success(f"Restored settings from {name}")

    def show_backups(self, backups: list["BackupRecord"]) -> None:
        """Display backups as a numbered table, newest first."""
        if not backups:
            self.info("No backup files found")
            return

        table = Table(title="Available backup files", show_header=True, header_style="bold")
        table.add_column("#", justify="right", style="cyan")
        table.add_column("File")
        table.add_column("Created")
        table.add_column("Kind", style="dim")

        for number, record in enumerate(backups, start=1):
            table.add_row(str(number), escape(record.name), record.created_display, record.kind.value)

        self.console.print()
        self.console.print(table)
        self.console.print(f"Total backups: {len(backups)}")
        self.console.print("[dim]Usage: ccglm restore <#>[/dim]")

    def show_settings(self, document: Any) -> None:
        """Pretty-print a settings document."""
        self.console.print_json(json.dumps(document, ensure_ascii=False))

    def show_summary(self, summary: dict[str, str]) -> None:
        """Display the profile summary panel."""
        lines = [f"[bold]{escape(label)}:[/bold] {escape(value)}" for label, value in summary.items()]
        self.console.print(Panel("\n".join(lines), title="Profile", border_style="blue"))
