"""Serialise a finished document to ``swagger.json`` and ``swagger.yml``."""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from beeswag.config import atomic_write
from beeswag.models import Document


def render_json(document: Document) -> str:
    return json.dumps(document.to_dict(), indent=4, ensure_ascii=False)


def render_yaml(document: Document) -> str:
    return yaml.safe_dump(
        document.to_dict(), sort_keys=False, allow_unicode=True, default_flow_style=False
    )


def write_documents(
    document: Document,
    output_dir: Path,
    json_name: str = "swagger.json",
    yaml_name: str = "swagger.yml",
) -> tuple[Path, Path]:
    """Write the JSON and YAML renditions of *document* into *output_dir*.

    Both files are rendered before either is written, and each write is
    atomic, so a failure never leaves a half-written document behind.

    Returns:
        ``(json path, yaml path)``.
    """
    json_text = render_json(document)
    yaml_text = render_yaml(document)
    json_path = output_dir / json_name
    yaml_path = output_dir / yaml_name
    atomic_write(json_path, json_text)
    atomic_write(yaml_path, yaml_text)
    return json_path, yaml_path
