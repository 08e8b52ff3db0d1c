"""Point-in-time snapshots of the JSON data directory.

Each snapshot is a directory under ``BACKUP_DIR`` named after its creation
time, holding a plain copy of every collection file present at that moment.
The nightly job is scheduled by APScheduler (see stockbook.__init__), and it
can be run by hand::

    flask backup
    flask purge-backups --limit 7
"""

from __future__ import annotations

import datetime as _dt
import logging
import shutil
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def snapshot_name(now_utc: _dt.datetime) -> str:
    stamp = now_utc.isoformat(timespec="milliseconds")
    if stamp.endswith("+00:00"):
        stamp = stamp[: -len("+00:00")]
    return (stamp + "Z").replace(":", "-").replace(".", "-")


def create_snapshot(files: Iterable[Path], backup_dir: Path,
                    now: Optional[_dt.datetime] = None) -> Optional[Path]:
    """Copy ``files`` into a fresh snapshot directory and return its path."""
    now_utc = now or _dt.datetime.now(_dt.timezone.utc)
    target = Path(backup_dir) / snapshot_name(now_utc)
    try:
        target.mkdir(parents=True, exist_ok=True)
        copied = 0
        for source in files:
            source = Path(source)
            if source.exists():
                shutil.copy2(source, target / source.name)
                copied += 1
    except OSError as exc:
        logger.exception("Backup failed: %s", exc)
        return None

    logger.info("Backup created: %s (%d files)", target, copied)
    return target


def list_snapshots(backup_dir: Path) -> list[Path]:
    """Snapshot directories, newest first."""
    root = Path(backup_dir)
    if not root.is_dir():
        return []
    return sorted((p for p in root.iterdir() if p.is_dir()), key=lambda p: p.name, reverse=True)


def purge_snapshots(backup_dir: Path, keep: int = 7) -> list[Path]:
    removed: list[Path] = []
    for candidate in list_snapshots(backup_dir)[max(keep, 0):]:
        try:
            shutil.rmtree(candidate)
            removed.append(candidate)
        except OSError as exc:
            logger.warning("Unable to purge old backup %s: %s", candidate, exc)
    return removed


def iter_snapshot_copies(backup_dir: Path, filename: str) -> Iterator[Path]:
    for snapshot in list_snapshots(backup_dir):
        candidate = snapshot / filename
        if candidate.is_file():
            yield candidate
