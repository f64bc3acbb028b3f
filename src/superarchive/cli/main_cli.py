"""
Top-level CLI: archive a git superproject and its nested repositories.

Exit statuses: 0 on success, 1 when the destination does not suit the mode,
254 for an unrecognized option and 255 for any other failure.
"""

import logging
import signal
from pathlib import Path
from typing import List, Optional

import click
import typer
from pydantic import ValidationError as SchemaValidationError
from rich.console import Console

from superarchive import PROGRAM, __version__
from superarchive.core.config import settings
from superarchive.core.errors import BadOptionError, SuperArchiveError, ValidationError
from superarchive.pipelines.archive_pipeline import run_archive
from superarchive.schemas.units import RunConfiguration

logger = logging.getLogger(__name__)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)

E_VALIDATION = 1
E_BAD_OPTION = 254
E_UNKNOWN = 255

USAGE = f"""Usage is as follows:

{PROGRAM} <--version>
    Prints the program version number on a line by itself and exits.

{PROGRAM} [--format|-f <fmt>] [--prefix <path>] [--revision|-r <rev>] [--separate|-s] [--verbose|-v] [output_file]
    Creates an archive for the entire git superproject, and its submodules
    using the passed parameters, described below.

    If '--format' or '-f' is specified, the archive is created with the named
    git archiver backend. Obviously, this must be a backend that git-archive
    understands. The format defaults to 'tar' if not specified. Only 'tar'
    and 'zip' archives can be combined; other backends need '--separate'.

    If '--prefix' is specified, the archive's superproject and all submodules
    are created with the <path> prefix named. The default is to not use one.

    If '--revision' or '-r' is specified, that tree-ish is archived in every
    repository instead of HEAD.

    If '--separate' or '-s' is specified, individual archives will be created
    for each of the superproject itself and its submodules. The default is to
    concatenate individual archives into one larger archive.

    If 'output_file' is specified, the resulting archive is created as the
    file named. This parameter is essentially a path that must be writeable.
    When combined with '--separate' ('-s') this path must refer to a directory.
    Without this parameter or when combined with '--separate' the resulting
    archive(s) are named with the basename of the archived directory and a
    file extension equal to their format (for instance, 'superproject.tar').
"""

app = typer.Typer(help="Archive a git superproject together with its nested repositories.", add_completion=False)


def _version_callback(value: bool):
    if value:
        typer.echo(f"{PROGRAM} version {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s - %(message)s")
    logging.getLogger("superarchive").setLevel(level)


@app.command(context_settings={"allow_interspersed_args": False})
def archive(
    output_file: Optional[Path] = typer.Argument(
        None, help="Destination file, or directory (required with --separate). Defaults to the current directory."
    ),
    archive_format: str = typer.Option("tar", "--format", "-f", help="Archive backend understood by git archive"),
    prefix: str = typer.Option("", "--prefix", help="Prefix prepended to every path in the archive(s)"),
    separate: bool = typer.Option(False, "--separate", "-s", help="Write one archive per repository"),
    revision: str = typer.Option("HEAD", "--revision", "-r", help="Tree-ish to archive in every repository"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every step"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Print the version and exit"
    ),
):
    """
    Create an archive of the git superproject in the current directory and all of its submodules.
    """
    _configure_logging(verbose)
    try:
        config = RunConfiguration(
            format=archive_format,
            global_prefix=prefix,
            separate=separate,
            destination=output_file if output_file is not None else Path.cwd(),
            revision=revision,
            workdir=Path.cwd(),
        )
    except SchemaValidationError as exc:
        raise BadOptionError(str(exc.errors()[0]["msg"])) from exc

    outputs = run_archive(config)
    for path in outputs:
        logger.info("Created %s", path)


def _raise_on_signal(signum, frame):
    raise SystemExit(128 + signum)


def _install_signal_handlers() -> None:
    # Turn termination signals into SystemExit so the work ledger still drains.
    for name in ("SIGTERM", "SIGQUIT", "SIGHUP"):
        signum = getattr(signal, name, None)
        if signum is not None:
            signal.signal(signum, _raise_on_signal)


def _report_bad_option(message: str) -> int:
    err_console.print(message, markup=False)
    err_console.print(USAGE, markup=False)
    return E_BAD_OPTION


def run(argv: Optional[List[str]] = None) -> int:
    """Run the CLI with `argv` and return the exit status instead of exiting."""
    command = typer.main.get_command(app)
    try:
        result = command.main(args=argv, prog_name=PROGRAM, standalone_mode=False)
    except click.exceptions.NoSuchOption as exc:
        return _report_bad_option(f"Unrecognized option: {exc.option_name}")
    except click.UsageError as exc:
        return _report_bad_option(exc.format_message())
    except BadOptionError as exc:
        return _report_bad_option(f"Invalid option value: {exc}")
    except click.exceptions.Abort:
        err_console.print("Aborted.", markup=False)
        return E_UNKNOWN
    except ValidationError as exc:
        err_console.print(str(exc), markup=False)
        return E_VALIDATION
    except SuperArchiveError as exc:
        err_console.print(f"{PROGRAM}: {exc}", markup=False)
        return E_UNKNOWN
    except Exception as exc:
        logger.exception("Unexpected failure")
        err_console.print(f"{PROGRAM}: unexpected error: {exc}", markup=False)
        return E_UNKNOWN
    return result if isinstance(result, int) else 0


def main():
    _install_signal_handlers()
    raise SystemExit(run())


if __name__ == "__main__":
    main()
