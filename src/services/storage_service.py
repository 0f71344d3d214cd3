"""Local data directory, full-store export/import and backups."""

import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from src.core.config import get_settings
from src.core.supabase import fetch_all, get_supabase_client, read_or_default
from src.schemas.settings import SettingsUpdate
from src.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

IMPORTS_DIR = "imports"
BACKUPS_DIR = "backups"
DISCOVERY_EXPORTS_DIR = Path("exports") / "discovery"
BACKUP_PREFIX = "insurance-crm"

# Logical backup collections and the table each one lives in.
# "leads" is the active pipeline view of the contacts table.
COLLECTION_TABLES: dict[str, str] = {
    "leads": "contacts",
    "activities": "activities",
    "tasks": "tasks",
    "settings": "settings",
    "contacts": "contacts",
    "discovery": "discovery_sessions",
}

# Primary-key column used when upserting each table on import
TABLE_KEYS: dict[str, str] = {
    "contacts": "id",
    "activities": "id",
    "tasks": "id",
    "settings": "id",
    "discovery_sessions": "session_id",
}


def ensure_dirs(root: Path) -> Path:
    """Create the data directory layout under `root`.

    Args:
        root: Data directory.

    Returns:
        Path: The same root.
    """
    for sub in (Path(IMPORTS_DIR), Path(BACKUPS_DIR), DISCOVERY_EXPORTS_DIR):
        (root / sub).mkdir(parents=True, exist_ok=True)
    return root


def probe_directory(path: str | Path) -> dict[str, Any]:
    """Probe whether a directory can be used as the data directory.

    The directory is created if needed, then a temporary file is written,
    read back and removed.

    Args:
        path: Candidate directory.

    Returns:
        dict: `success`, `readable`, `writable` flags and an optional `error`.
    """
    result: dict[str, Any] = {"success": False, "readable": False, "writable": False, "error": None}
    try:
        directory = Path(path).expanduser()
        directory.mkdir(parents=True, exist_ok=True)
        result["readable"] = os.access(directory, os.R_OK)
        with tempfile.NamedTemporaryFile(dir=directory, prefix=".write-test-", delete=True) as probe:
            probe.write(b"ok")
            probe.flush()
        result["writable"] = True
        result["success"] = result["readable"] and result["writable"]
        if not result["readable"]:
            result["error"] = "Directory is not readable"
    except OSError as e:
        result["error"] = str(e)
    return result


class StorageService:
    """Service for the local data directory and whole-store backups."""

    def __init__(self, settings_service: SettingsService | None = None) -> None:
        """Initialize storage service.

        Args:
            settings_service: Optional settings service (for the data_dir override).
        """
        self.client = get_supabase_client()
        self._settings_service = settings_service or SettingsService()

    async def get_data_dir(self) -> Path:
        """Resolve the data directory: settings row first, then configuration.

        Returns:
            Path: Absolute data directory, created with its layout.
        """
        row = await self._settings_service.get()
        configured = (row.get("data_dir") or "").strip() or get_settings().data_dir
        return ensure_dirs(Path(configured).expanduser().resolve())

    async def discovery_export_dir(self) -> Path:
        """Directory that discovery exports are written to."""
        return (await self.get_data_dir()) / DISCOVERY_EXPORTS_DIR

    async def _fetch_table(self, table: str) -> list[dict[str, Any]]:
        async def _select() -> list[dict[str, Any]]:
            return fetch_all(lambda: self.client.table(table).select("*").order(TABLE_KEYS[table]))

        return await read_or_default(_select, [], context=f"Storage:{table}")

    async def export_all(self) -> dict[str, list[dict[str, Any]]]:
        """Export every logical collection to a single JSON-ready document.

        Returns:
            dict: Collection name to list of rows.
        """
        cache: dict[str, list[dict[str, Any]]] = {}
        out: dict[str, list[dict[str, Any]]] = {}
        for collection, table in COLLECTION_TABLES.items():
            if table not in cache:
                cache[table] = await self._fetch_table(table)
            rows = cache[table]
            if collection == "leads":
                rows = [row for row in rows if not row.get("archived_at")]
            out[collection] = rows
        return out

    async def import_all(self, payload: dict[str, Any]) -> dict[str, int]:
        """Restore collections from an exported document.

        Rows are upserted by primary key, so importing the same backup twice
        is harmless. `leads` is only used when `contacts` is absent.

        Args:
            payload: Document produced by `export_all`.

        Returns:
            dict: Rows written per collection.

        Raises:
            ValueError: If a collection is not a list of objects.
        """
        imported: dict[str, int] = {}
        for collection, table in COLLECTION_TABLES.items():
            if collection not in payload:
                continue
            if collection == "leads" and "contacts" in payload:
                continue
            rows = payload[collection]
            if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
                raise ValueError(f"Collection '{collection}' must be a list of objects")
            if rows:
                self.client.table(table).upsert(rows, on_conflict=TABLE_KEYS[table]).execute()
            imported[collection] = len(rows)
            logger.info("Imported %d rows into %s", len(rows), table)
        return imported

    async def create_backup(self) -> Path:
        """Write a timestamped JSON backup of the whole store.

        Returns:
            Path: The backup file.
        """
        root = await self.get_data_dir()
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")
        backup_path = root / BACKUPS_DIR / f"{BACKUP_PREFIX}_{stamp}.json"
        data = await self.export_all()
        backup_path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
        logger.info("Backup written to %s", backup_path)
        return backup_path

    async def list_backups(self) -> list[dict[str, Any]]:
        """List backup files, newest first.

        Returns:
            list[dict]: name, path, size and created_at per backup.
        """
        backups_dir = (await self.get_data_dir()) / BACKUPS_DIR
        entries = []
        for path in backups_dir.glob("*.json"):
            stat = path.stat()
            entries.append({
                "name": path.name,
                "path": str(path),
                "size": stat.st_size,
                "created_at": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            })
        return sorted(entries, key=lambda entry: entry["created_at"], reverse=True)

    async def move_data_directory(self, new_path: str) -> dict[str, Any]:
        """Move the data directory to a new location.

        The current directory tree is copied (not moved) to the new location,
        a fresh backup is written there, and the settings row is repointed.

        Args:
            new_path: Target directory.

        Returns:
            dict: `data_dir`, `message` and `backup_path`.

        Raises:
            ValueError: If the target is unusable or already current.
        """
        target = Path(new_path).expanduser().resolve()
        probe = probe_directory(target)
        if not probe["success"]:
            raise ValueError(probe["error"] or "Directory is not accessible")

        current = await self.get_data_dir()
        if current == target:
            raise ValueError("This is already the current data directory")

        shutil.copytree(current, target, dirs_exist_ok=True)
        ensure_dirs(target)
        await self._settings_service.update(SettingsUpdate(data_dir=str(target)))

        backup_path = await self.create_backup()
        logger.info("Data directory moved from %s to %s", current, target)
        return {
            "data_dir": str(target),
            "message": f"Data copied from {current} to {target}",
            "backup_path": str(backup_path),
        }
