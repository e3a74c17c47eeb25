"""Centralized JSON handling utilities."""

import json
from pathlib import Path
from typing import Any

from ..config import MergeRequest
from ..core.types import Progress


def load_json(path: Path) -> dict[str, Any]:
    """Load JSON file with error handling.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON data

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If JSON is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"JSON file not found: {path}")

    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: dict[str, Any], indent: int | None = 2) -> None:
    """Write data to JSON file.

    Args:
        path: Path to write JSON file
        data: Data to serialize
        indent: JSON indentation (None for compact)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent)


def load_manifest(path: Path) -> MergeRequest:
    """Load and validate a merge manifest.

    Expected shape:
        {"output": "out_####.exr", "threads": 0,
         "files": [{"path": "a_0001.exr", "channels": ["R", "G"]}, ...]}

    Raises:
        pydantic.ValidationError: If the manifest does not describe a valid request
    """
    return MergeRequest.model_validate(load_json(path))


def write_report(path: Path, request: MergeRequest, progress: Progress, errors: list[str]) -> None:
    """Write a JSON summary of a finished batch."""
    write_json(
        path,
        {
            "output": request.output,
            "files": len(request.files),
            "progress": {"done": progress.done, "max": progress.max, "finished": progress.finished},
            "errors": errors,
        },
    )
