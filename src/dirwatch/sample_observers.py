"""Example callback observers that can be referenced from configuration."""
from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

from .events import EventBatch, EventType, FileEvent

logger = logging.getLogger(__name__)


def log_batch(batch: EventBatch, options: Optional[Dict[str, Any]] = None) -> None:
    """Log every event of a batch, or the whole batch as JSON with ``format: json``."""

    options = options or {}
    level = _level_option(options)

    if str(options.get("format", "text")).lower() == "json":
        logger.log(level, "%s", json.dumps(batch.to_dict()))
        return

    message = options.get("message", "Directory change detected")
    logger.log(level, "%s: %s events at %s", message, len(batch), batch.at.isoformat(timespec="seconds"))
    for event in batch:
        logger.log(level, "  %s", _describe_event(event))


def summarize_batch(batch: EventBatch, options: Optional[Dict[str, Any]] = None) -> None:
    """Summarize a batch as per-directory counts of each event type."""

    options = options or {}
    level = _level_option(options)
    root = options.get("root")
    root_path = Path(root) if root else None

    counts: Dict[str, Dict[str, int]] = {}
    for event in batch:
        directory = _relative_directory(event.path.parent, root_path)
        per_type = counts.setdefault(directory, {})
        per_type[event.event_type.value] = per_type.get(event.event_type.value, 0) + 1

    summary = "; ".join(
        f"{directory}: " + ", ".join(f"{name}={count}" for name, count in sorted(counts[directory].items()))
        for directory in sorted(counts)
    )
    logger.log(level, "Batch at %s (%s events) -> %s", batch.at.isoformat(timespec="seconds"), len(batch), summary)


def run_shell_command(batch: EventBatch, options: Dict[str, Any]) -> None:
    """Execute a templated shell command for each added or changed file.

    Placeholders: ``{path}``, ``{directory}``, ``{filename}``, ``{event}``.
    Set ``on_deleted: true`` to run it for deleted files too.
    """

    template = options.get("command")
    if not template:
        logger.error("run_shell_command requires a 'command' option")
        return

    wanted = {EventType.ADDED, EventType.CHANGED}
    if options.get("on_deleted"):
        wanted.add(EventType.DELETED)

    for event in batch:
        if event.event_type not in wanted:
            continue
        values = {
            "path": str(event.path),
            "directory": str(event.path.parent),
            "filename": event.path.name,
            "event": event.event_type.value,
        }
        try:
            command = str(template).format(**values)
        except KeyError as exc:
            logger.error("run_shell_command missing placeholder value for '%s'", exc)
            return

        logger.info("Executing shell command for %s: %s", event.path, command)
        try:
            subprocess.run(command, shell=True, check=True)
        except subprocess.CalledProcessError as exc:
            logger.error("Shell command failed (exit %s): %s", exc.returncode, command)


def _level_option(options: Dict[str, Any]) -> int:
    level_name = str(options.get("level", "INFO")).upper()
    return getattr(logging, level_name, logging.INFO)


def _describe_event(event: FileEvent) -> str:
    details = [f"type={event.event_type.value}", f"path={event.path}"]
    if event.record is not None:
        details.append(f"size={event.record.size}")
        details.append(f"mtime={event.record.mtime}")
    return ", ".join(details)


def _relative_directory(directory: Path, root_path: Optional[Path]) -> str:
    if root_path is None:
        return str(directory)
    try:
        relative = directory.relative_to(root_path)
    except ValueError:
        return str(directory)
    return str(relative)
