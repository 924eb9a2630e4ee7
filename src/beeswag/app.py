"""Typer application and CLI entry point for beeswag.

Two commands are registered on the root application:

* ``generate`` -- build the document and write ``swagger.json`` and
  ``swagger.yml``.
* ``routes`` -- build the document and print its operations as a table,
  without writing anything.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler, invokes the Typer app and
maps :class:`~beeswag.exceptions.BeeswagError` to its exit code.

See Also:
    :mod:`beeswag.config`: Configuration precedence resolution.
    :mod:`beeswag.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
from pathlib import Path
from typing import Any, Optional

import typer

from beeswag import __version__
from beeswag.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="beeswag",
    help="Generate Swagger 2.0 documents from annotated Beego controllers.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"beeswag {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~beeswag.output.OutputManager` from CLI
    flags.

    Args:
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output.
    """
    from beeswag.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.JSON if json_output else OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))


def _run(root: Path, output_dir: Optional[Path] = None, gopath: Optional[str] = None):  # noqa: ANN202
    """Resolve configuration for *root* and generate its document."""
    from beeswag.config import resolve_config
    from beeswag.exceptions import BeeswagError
    from beeswag.generator import generate_docs
    from beeswag.output import debug, error
    from beeswag.session import AnalysisSession

    try:
        config = resolve_config(root, cli_output_dir=output_dir, cli_gopath=gopath)
        debug(f"Router file: {config.router_path}")
        session = AnalysisSession(config)
        generate_docs(config, session=session)
    except BeeswagError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    return config, session


@app.command("generate")
def generate_command(
    root: Path = typer.Argument(
        Path("."), help="Project root containing routers/router.go."
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Directory for swagger.json and swagger.yml."
    ),
    gopath: Optional[str] = typer.Option(
        None, "--gopath", help="GOPATH override (os.pathsep separated)."
    ),
) -> None:
    """Generate swagger.json and swagger.yml for a project.

    Example::

        beeswag generate ./myapi --output-dir ./docs
    """
    from beeswag.output import OutputFormat, get_output, success
    from beeswag.writer import write_documents

    config, session = _run(root, output_dir, gopath)
    document = session.document
    json_path, yaml_path = write_documents(
        document,
        config.resolved_output_dir,
        config.json_filename,
        config.yaml_filename,
    )

    out = get_output()
    if out.format == OutputFormat.JSON:
        out.print_json(
            {
                "json": str(json_path),
                "yaml": str(yaml_path),
                "paths": len(document.paths),
                "definitions": len(document.definitions),
                "warnings": session.warnings,
            }
        )
        return
    success(
        f"Wrote {json_path} and {yaml_path} "
        f"({len(document.paths)} paths, {len(document.definitions)} definitions, "
        f"{len(session.warnings)} warnings)"
    )


@app.command("routes")
def routes_command(
    root: Path = typer.Argument(
        Path("."), help="Project root containing routers/router.go."
    ),
    gopath: Optional[str] = typer.Option(
        None, "--gopath", help="GOPATH override (os.pathsep separated)."
    ),
) -> None:
    """List documented operations without writing any files.

    Example::

        beeswag routes ./myapi
    """
    from beeswag.output import info, print_table

    _, session = _run(root, gopath=gopath)
    document = session.document
    rows: list[list[str]] = []
    for path, item in document.paths.items():
        for method, operation in item.operations():
            rows.append(
                [
                    method.value.upper(),
                    path,
                    operation.operation_id or "",
                    ", ".join(operation.tags),
                ]
            )
    if not rows:
        info("No documented routes found.")
        return
    print_table(["Method", "Path", "Operation", "Tags"], rows, title=document.info.title)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``beeswag`` console script.

    :class:`~beeswag.exceptions.BeeswagError` instances cause a clean exit
    with the error's ``exit_code``. Any other exception is reported and
    exits with a generic failure.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from beeswag.exceptions import BeeswagError
        from beeswag.output import error

        if isinstance(exc, BeeswagError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
