"""
buildstrap CLI

Commands:
- bootstrap: stage the source tree, acquire the payload and run it
- build: run the build pipeline (the payload side)
"""

import logging
import sys
from typing import Optional

import click
import yaml

from config import Config, ConfigManager
from buildstrap import __version__
from buildstrap.build_app import BuildApplication
from buildstrap.errors import log_exception_tree
from buildstrap.launcher import Launcher
from buildstrap.logging_config import setup_logging
from buildstrap.models import ExitCode, StartOptions

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def load_config(config_path: Optional[str], log_level: Optional[str]) -> Config:
    """Load the configuration and set up logging from it."""
    config = ConfigManager(config_path).load()
    if log_level:
        config = config.with_updates("logging", level=log_level.upper())

    setup_logging(
        log_level=config.logging.level,
        log_file=config.logging.file,
        max_bytes=config.logging.max_bytes,
        backup_count=config.logging.backup_count,
    )
    return config


def _exit(exit_code: ExitCode) -> None:
    sys.exit(int(exit_code))


@click.group()
@click.version_option(version=__version__)
def cli():
    """buildstrap - self-bootstrapping build launcher"""
    pass


@cli.command()
@click.option("--base-dir", type=click.Path(), default=None, help="Base directory to stage in (used when it exists)")
@click.option("--prerelease/--no-prerelease", default=None, help="Allow prerelease payload versions")
@click.option("--branch", "branch_name", default=None, help="Branch name of the build")
@click.option("--config", "config_path", type=click.Path(), default=None, help="Configuration file path")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), default=None, help="Log level")
def bootstrap(
    base_dir: Optional[str],
    prerelease: Optional[bool],
    branch_name: Optional[str],
    config_path: Optional[str],
    log_level: Optional[str],
):
    """Acquire the payload and run it under the build timeout"""
    try:
        config = load_config(config_path, log_level)
        options = StartOptions(base_dir=base_dir, prerelease_enabled=prerelease, branch_name=branch_name)
    except (ValueError, OSError, yaml.YAMLError) as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        _exit(ExitCode.FAILURE)
        return

    try:
        exit_code = Launcher(config).run(options)
    except Exception as e:
        log_exception_tree(logger, e, prefix="Bootstrap failed: ")
        exit_code = ExitCode.FAILURE

    _exit(exit_code)


@cli.command()
@click.option("--config", "config_path", type=click.Path(), default=None, help="Configuration file path")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), default=None, help="Log level")
def build(config_path: Optional[str], log_level: Optional[str]):
    """Run the build pipeline"""
    try:
        config = load_config(config_path, log_level)
    except (ValueError, OSError, yaml.YAMLError) as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        _exit(ExitCode.FAILURE)
        return

    try:
        exit_code = BuildApplication(config).run()
    except Exception as e:
        log_exception_tree(logger, e, prefix="Build failed: ")
        exit_code = ExitCode.FAILURE

    _exit(exit_code)


def main():
    """CLI entry point"""
    cli()


if __name__ == "__main__":
    main()
