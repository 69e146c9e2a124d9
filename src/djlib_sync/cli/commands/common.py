"""Helpers shared by the CLI commands."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click

from ...config import Config
from ...core.errors import BackupError, OperationAborted, PreconditionError
from ...core.rekordbox import RekordboxXmlLibrary
from ...database import MikDatabaseService, ProgressTracker, TqdmProgressReporter

logger = logging.getLogger(__name__)

xml_option = click.option(
    "--xml",
    "xml_path",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the Rekordbox XML collection export",
)
dry_run_option = click.option(
    "--dry-run",
    is_flag=True,
    help="Simulate the run and report what would change without writing anything",
)
mik_db_option = click.option(
    "--mik-db",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to MIKStore.db (defaults to the Mixed In Key install location)",
)
mik_version_option = click.option(
    "--mik-version",
    type=str,
    help="Mixed In Key version folder used to locate MIKStore.db (e.g. 11.0)",
)


def get_config() -> Config:
    """Config stored on the click context, or a fresh one."""
    ctx = click.get_current_context(silent=True)
    if ctx is not None and isinstance(ctx.obj, Config):
        return ctx.obj
    return Config()


@contextmanager
def handle_run_errors() -> Iterator[None]:
    """Turn fatal run errors into click exits.

    Precondition and backup failures print their message and exit non-zero;
    a declined confirmation aborts.
    """
    try:
        yield
    except (PreconditionError, BackupError) as e:
        logger.error("%s", e)
        raise click.ClickException(str(e)) from e
    except OperationAborted as e:
        logger.warning("%s", e)
        raise click.Abort() from e


@contextmanager
def progress_tracker() -> Iterator[ProgressTracker]:
    """Progress tracker rendering tqdm bars, silent when DEBUG logging is on."""
    debug = logging.getLogger().getEffectiveLevel() <= logging.DEBUG
    reporter = TqdmProgressReporter(disable=debug)
    try:
        yield ProgressTracker(callback=reporter)
    finally:
        reporter.close_all()


def load_library(xml_path: Path) -> RekordboxXmlLibrary:
    """Load the Rekordbox XML, failing the command if it is unusable."""
    return RekordboxXmlLibrary.load(xml_path)


def open_mik_database(
    config: Config, mik_db: Optional[Path], mik_version: Optional[str]
) -> MikDatabaseService:
    """Resolve and open the MIK database."""
    db_path = config.resolve_mik_database_path(mik_db, mik_version)
    return MikDatabaseService(db_path)
