"""Click-based CLI for ccglm - Claude Code <-> Z.AI GLM switcher."""

from __future__ import annotations

import sys
from typing import NoReturn, Optional

import click
import yaml
from rich.console import Console
from rich.prompt import Prompt

from ccglm import __version__, store
from ccglm.backup import BackupManager
from ccglm.config import apply_secrets, ensure_config_exists, get_config_path, load_config, load_secrets
from ccglm.config.schema import SwitcherConfig
from ccglm.config.secrets import Secrets
from ccglm.errors import SwitcherError
from ccglm.logger import SwitchLogger
from ccglm.profiles import Profile, describe, redact
from ccglm.switcher import ProfileSwitcher

console = Console()


def _make_logger(ctx: click.Context, verbose: bool) -> SwitchLogger:
    """Create a logger honouring --verbose given before or after the command."""
    group_verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    return SwitchLogger(console, verbose=verbose or group_verbose)


def _is_dry_run(ctx: click.Context, dry_run: bool) -> bool:
    return dry_run or bool(ctx.obj and ctx.obj.get("dry_run"))


def _fail(logger: SwitchLogger, error: SwitcherError) -> NoReturn:
    logger.error(error.message, error.hint)
    sys.exit(error.exit_code)


def _load_runtime(logger: SwitchLogger) -> tuple[SwitcherConfig, Secrets]:
    """Build the configuration once for this invocation."""
    try:
        config = load_config()
    except SwitcherError as e:
        _fail(logger, e)

    secrets = load_secrets(config)
    if secrets.source is not None:
        logger.debug(f"Secrets file: {secrets.source}")
    if secrets.permissions_tightened:
        logger.debug(f"Restricted permissions of {secrets.source} to 0600")
    if secrets.permission_error:
        logger.warning(secrets.permission_error)

    config = apply_secrets(config, secrets)
    logger.debug(f"Settings file: {config.settings_path}")
    logger.debug(f"Backup directory: {config.backup_dir} (keeping {config.max_backups})")
    return config, secrets


def _switch(ctx: click.Context, profile: Profile, verbose: bool, dry_run: bool) -> None:
    logger = _make_logger(ctx, verbose)
    config, secrets = _load_runtime(logger)

    switcher = ProfileSwitcher(config, secrets, logger=logger)
    result = switcher.switch(profile, dry_run=_is_dry_run(ctx, dry_run))
    logger.switch_result(result)

    if not result.success:
        sys.exit(result.exit_code)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", prog_name="ccglm")
@click.option("--verbose", "-v", is_flag=True, help="Show diagnostic output")
@click.option("--dry-run", "-n", is_flag=True, help="Preview changes without applying")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, dry_run: bool) -> None:
    """ccglm - switch Claude Code between Anthropic and Z.AI GLM.

    Every switch backs up ~/.claude/settings.json first and keeps your own
    env entries intact.

    \b
    Examples:
      ccglm glm            Use Z.AI GLM models (needs ZAI_AUTH_TOKEN in .env)
      ccglm cc             Back to Claude Code defaults
      ccglm list           Show backups
      ccglm restore 1      Restore the newest backup
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["dry_run"] = dry_run


@cli.command()
@click.option("--verbose", "-v", is_flag=True, help="Show diagnostic output")
@click.option("--dry-run", "-n", is_flag=True, help="Preview changes without applying")
@click.pass_context
def cc(ctx: click.Context, verbose: bool, dry_run: bool) -> None:
    """Switch to Claude Code (remove Z.AI settings)."""
    _switch(ctx, Profile.DEFAULT, verbose, dry_run)


@cli.command()
@click.option("--verbose", "-v", is_flag=True, help="Show diagnostic output")
@click.option("--dry-run", "-n", is_flag=True, help="Preview changes without applying")
@click.pass_context
def glm(ctx: click.Context, verbose: bool, dry_run: bool) -> None:
    """Switch to Z.AI GLM models.

    Reads ZAI_AUTH_TOKEN from ./.env or ~/.config/ccglm/.env.
    """
    _switch(ctx, Profile.ALTERNATE, verbose, dry_run)


@cli.command("list")
@click.option("--verbose", "-v", is_flag=True, help="Show diagnostic output")
@click.pass_context
def list_backups(ctx: click.Context, verbose: bool) -> None:
    """List settings backups, newest first."""
    logger = _make_logger(ctx, verbose)
    config, _ = _load_runtime(logger)

    backups = BackupManager(config.backup_path, config.max_backups).list_backups()
    logger.show_backups(backups)


@cli.command()
@click.argument("number", type=int, required=False)
@click.option("--verbose", "-v", is_flag=True, help="Show diagnostic output")
@click.option("--dry-run", "-n", is_flag=True, help="Preview changes without applying")
@click.pass_context
def restore(ctx: click.Context, number: Optional[int], verbose: bool, dry_run: bool) -> None:
    """Restore backup NUMBER (as shown by 'list').

    Without NUMBER the backups are listed and you are asked to pick one.
    The current settings are saved as a before_restore backup first.
    """
    logger = _make_logger(ctx, verbose)
    config, secrets = _load_runtime(logger)

    if number is None:
        backups = BackupManager(config.backup_path, config.max_backups).list_backups()
        if not backups:
            logger.error("No backup files found")
            sys.exit(1)

        logger.show_backups(backups)
        choice = Prompt.ask(
            f"Select backup to restore [1-{len(backups)}, q to cancel]", default="q", console=console
        )
        choice = choice.strip().lower()
        if choice in ("", "q", "quit"):
            logger.warning("Restore cancelled")
            return
        if not choice.isdigit():
            logger.error(f"Invalid selection: {choice}", f"Enter a number between 1 and {len(backups)}.")
            sys.exit(1)
        number = int(choice)

    switcher = ProfileSwitcher(config, secrets, logger=logger)
    result = switcher.restore(number, dry_run=_is_dry_run(ctx, dry_run))
    logger.restore_result(result)

    if not result.success:
        sys.exit(result.exit_code)


@cli.command()
@click.option("--verbose", "-v", is_flag=True, help="Show diagnostic output")
@click.pass_context
def show(ctx: click.Context, verbose: bool) -> None:
    """Show current settings and the active profile."""
    logger = _make_logger(ctx, verbose)
    config, _ = _load_runtime(logger)
    settings = config.settings_file

    if not settings.exists():
        logger.error(f"Settings file not found: {settings}")
        sys.exit(1)
    if not settings.is_file():
        logger.error(
            f"Settings path is not a file: {settings}",
            "Point settings_path (or CCGLM_SETTINGS_PATH) at the settings.json file.",
        )
        sys.exit(1)

    document = None
    if store.is_empty_or_missing(settings):
        logger.warning(f"Settings file is empty: {settings}")
    else:
        try:
            store.validate(settings)
            document = store.read(settings)
        except SwitcherError as e:
            _fail(logger, e)
        logger.show_settings(redact(document))

    summary = describe(document)
    backups = BackupManager(config.backup_path, config.max_backups).list_backups()
    summary["Backups"] = f"{len(backups)} (keeping {config.max_backups})"
    logger.show_summary(summary)


@cli.group()
def config() -> None:
    """Manage the ccglm configuration file."""
    pass


@config.command("init")
def config_init() -> None:
    """Create a default configuration file."""
    logger = SwitchLogger(console)
    path, created = ensure_config_exists()
    if created:
        logger.success(f"Configuration created: {path}")
    else:
        logger.info(f"Configuration already exists: {path}")


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration."""
    logger = _make_logger(ctx, False)
    config_obj, secrets = _load_runtime(logger)

    logger.info(f"Config file: {get_config_path()}")
    data = config_obj.model_dump(exclude_none=True, mode="json")
    console.print(yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True), markup=False)

    if secrets.source is None:
        logger.warning("No secrets file found")
    else:
        state = "set" if secrets.auth_token else "missing"
        logger.info(f"Secrets file: {secrets.source}")
        logger.info(f"ZAI_AUTH_TOKEN: {state}")


def main() -> None:
    """Entry point for console_scripts."""
    cli()


if __name__ == "__main__":
    main()
