#!/usr/bin/env python3
"""
JSON Utilities Module

Centralized JSON reading and writing for the file-backed document store and
the CLI. Files are pretty-printed UTF-8 so Vietnamese descriptions stay
readable in the raw documents.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def write_json(filepath: str | Path, data: Any, sort_keys: bool = False) -> None:
    """
    Write data to a JSON file atomically.

    The document is written to a temporary sibling first and moved into place,
    so a crash mid-write never leaves a truncated collection file.

    Args:
        filepath: Path to the JSON file
        data: Data to write to the file
        sort_keys: If True, sort dictionary keys (default: False)
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=filepath.parent, prefix=f".{filepath.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=sort_keys)
        os.replace(tmp_name, filepath)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def read_json(filepath: str | Path, default: Any = None) -> Any:
    """
    Read data from a JSON file.

    Args:
        filepath: Path to the JSON file
        default: Returned when the file does not exist

    Returns:
        The parsed JSON data
    """
    filepath = Path(filepath)
    if not filepath.exists():
        return default
    with open(filepath, encoding="utf-8") as f:
        return json.load(f)


def format_json(data: Any, sort_keys: bool = False) -> str:
    """
    Format data as a pretty-printed JSON string for CLI output.

    Args:
        data: Data to format
        sort_keys: If True, sort dictionary keys (default: False)

    Returns:
        Pretty-printed JSON string
    """
    return json.dumps(data, indent=2, ensure_ascii=False, sort_keys=sort_keys, default=str)
