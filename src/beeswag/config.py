"""Configuration loading, Go environment discovery, and atomic writes.

This module turns CLI flags, environment variables and the optional
project file into one :class:`~beeswag.models.GeneratorConfig`:

* **Project config** -- ``beeswag.json`` in the project root, validated
  as a :class:`~beeswag.models.ProjectConfig`. See
  :func:`load_project_config`.
* **Go environment** -- ``GOPATH`` roots, ``GOROOT`` (falling back to
  ``go env GOROOT``) and the module path declared in ``go.mod``.
* **Precedence resolution** -- :func:`resolve_config` merges everything
  into the effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) so a failed run never leaves half-written output.
"""

from __future__ import annotations

import json
import os
import re
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from beeswag.exceptions import ConfigError
from beeswag.models import GeneratorConfig, ProjectConfig

_PROJECT_CONFIG_FILENAME = "beeswag.json"
_GO_MOD_FILENAME = "go.mod"

_MODULE_RE = re.compile(r"^\s*module\s+(\S+)", re.MULTILINE)


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Project-local config ---


def load_project_config(project_root: Path) -> Optional[ProjectConfig]:
    """Load ``beeswag.json`` from *project_root*.

    Returns:
        The validated :class:`~beeswag.models.ProjectConfig`, or ``None``
        if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = project_root / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8")
        return ProjectConfig.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc


# --- Go environment ---


def read_module_path(project_root: Path) -> Optional[str]:
    """Return the module path declared in ``<project_root>/go.mod``, if any."""
    path = project_root / _GO_MOD_FILENAME
    if not path.is_file():
        return None
    match = _MODULE_RE.search(path.read_text(encoding="utf-8"))
    if match is None:
        return None
    return match.group(1).strip('"')


def split_gopath(value: str) -> list[Path]:
    """Split a ``GOPATH``-style list on :data:`os.pathsep`, dropping blanks."""
    return [Path(part) for part in value.split(os.pathsep) if part.strip()]


def detect_goroot() -> Optional[Path]:
    """Ask the Go toolchain for its root. Returns ``None`` when Go is not installed."""
    try:
        proc = subprocess.run(
            ["go", "env", "GOROOT"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    value = proc.stdout.strip()
    if proc.returncode != 0 or not value:
        return None
    return Path(value)


# --- Precedence resolution ---


def resolve_config(
    project_root: Path,
    cli_output_dir: Optional[Path] = None,
    cli_gopath: Optional[str] = None,
    cli_router_file: Optional[str] = None,
) -> GeneratorConfig:
    """Resolve the generator configuration with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_output_dir``, ``cli_gopath``, ``cli_router_file``)
        2. Environment variables (``BEESWAG_OUTPUT_DIR``, ``GOPATH``,
           ``GOROOT``)
        3. Project config (``<project_root>/beeswag.json``)
        4. Defaults

    ``GOROOT`` falls back to ``go env GOROOT`` when neither the environment
    nor the project config names one.

    Args:
        project_root: Root directory of the Go project being documented.

    Returns:
        The effective :class:`~beeswag.models.GeneratorConfig`.

    Raises:
        ConfigError: If ``beeswag.json`` is invalid.
    """
    root = project_root.resolve()
    project = load_project_config(root) or ProjectConfig()

    values: dict = {"project_root": root}

    # 3. Project-local config
    if project.router_file is not None:
        values["router_file"] = project.router_file
    if project.vendor_dir is not None:
        values["vendor_dir"] = project.vendor_dir
    if project.framework_packages is not None:
        values["framework_packages"] = project.framework_packages
    if project.exclude is not None:
        values["exclude"] = project.exclude
    output_dir: Optional[Path] = (
        root / project.output_dir if project.output_dir is not None else None
    )
    gopath = [Path(p) for p in project.gopath] if project.gopath is not None else []
    goroot: Optional[Path] = Path(project.goroot) if project.goroot else None

    # 2. Environment variables
    env_output = os.environ.get("BEESWAG_OUTPUT_DIR")
    if env_output:
        output_dir = Path(env_output)
    env_gopath = os.environ.get("GOPATH")
    if env_gopath:
        gopath = split_gopath(env_gopath)
    env_goroot = os.environ.get("GOROOT")
    if env_goroot:
        goroot = Path(env_goroot)

    # 1. CLI flags
    if cli_output_dir is not None:
        output_dir = cli_output_dir
    if cli_gopath:
        gopath = split_gopath(cli_gopath)
    if cli_router_file is not None:
        values["router_file"] = cli_router_file

    if goroot is None:
        goroot = detect_goroot()

    values["output_dir"] = output_dir
    values["gopath"] = gopath
    values["goroot"] = goroot
    values["module_path"] = read_module_path(root)

    try:
        return GeneratorConfig(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
