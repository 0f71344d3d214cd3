"""Discovery session persistence and export service."""

import logging
from pathlib import Path
from typing import Any

from src.core.config import get_settings
from src.core.supabase import get_supabase_client, is_unique_violation, read_or_default
from src.services.discovery_document import (
    apply_client_name,
    create_default,
    extract_columns,
    generate_session_id,
    normalize_document,
)
from src.services.discovery_serializer import filename_for, to_json, to_text
from src.services.storage_service import StorageService

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = "id, session_id, client_id, client_name, created_at, updated_at"


class DiscoverySessionService:
    """Service for discovery session rows keyed by session id."""

    TABLE = "discovery_sessions"

    def __init__(self, storage_service: StorageService | None = None) -> None:
        """Initialize discovery session service with Supabase client.

        Args:
            storage_service: Optional storage service used to locate the export directory.
        """
        self.client = get_supabase_client()
        self._storage_service = storage_service

    @property
    def storage(self) -> StorageService:
        if self._storage_service is None:
            self._storage_service = StorageService()
        return self._storage_service

    async def get_by_client_id(self, client_id: str) -> dict[str, Any] | None:
        """Get the most recently updated session for a client.

        Args:
            client_id: Contact id.

        Returns:
            dict | None: Session summary or None if the client has none.
        """
        async def _select() -> dict[str, Any] | None:
            response = (
                self.client.table(self.TABLE)
                .select(SUMMARY_COLUMNS)
                .eq("client_id", client_id)
                .order("updated_at", desc=True)
                .limit(1)
                .execute()
            )
            return response.data[0] if response.data else None

        return await read_or_default(_select, None, context="Discovery")

    async def list_by_client_id(self, client_id: str) -> list[dict[str, Any]]:
        """List all sessions for a client, newest first."""
        async def _select() -> list[dict[str, Any]]:
            response = (
                self.client.table(self.TABLE)
                .select(SUMMARY_COLUMNS)
                .eq("client_id", client_id)
                .order("updated_at", desc=True)
                .execute()
            )
            return response.data or []

        return await read_or_default(_select, [], context="Discovery")

    async def get_by_session_id(self, session_id: str) -> dict[str, Any] | None:
        """Get a full session row by its session id.

        Args:
            session_id: Opaque session identifier.

        Returns:
            dict | None: The session row or None if not found.
        """
        async def _select() -> dict[str, Any] | None:
            response = (
                self.client.table(self.TABLE)
                .select("*")
                .eq("session_id", session_id)
                .maybe_single()
                .execute()
            )
            return response.data if response and response.data else None

        return await read_or_default(_select, None, context="Discovery")

    def _build_row(self, client_id: str, client_name: str | None, seed: dict[str, Any] | None) -> dict[str, Any]:
        session_id = generate_session_id()
        document = create_default(session_id, client_id, seed, agent=get_settings().default_agent)
        apply_client_name(document, client_name)

        columns = extract_columns(document)
        return {
            **columns,
            "session_id": session_id,
            "client_id": client_id,
            "client_name": columns["client_name"] or client_name,
            "json_payload": document,
            "yaml_payload": "",
        }

    async def create_for_client(
        self,
        client_id: str,
        client_name: str | None = None,
        seed: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a new discovery session for a client.

        A unique-constraint rejection on the generated session id is retried
        once with a fresh id; a second rejection propagates.

        Args:
            client_id: Contact id.
            client_name: Optional display name split into first/last name.
            seed: Optional partial document merged over the defaults.

        Returns:
            dict: `id`, `session_id`, `client_id` and `created_at` of the new row.
        """
        row = self._build_row(client_id, client_name, seed)
        try:
            response = self.client.table(self.TABLE).insert(row).execute()
        except Exception as e:
            if not is_unique_violation(e):
                raise
            logger.warning("[Discovery] Session id collision on %s, retrying", row["session_id"])
            row = self._build_row(client_id, client_name, seed)
            response = self.client.table(self.TABLE).insert(row).execute()

        created = response.data[0]
        logger.info("Created discovery session %s for client %s", row["session_id"], client_id)
        return {
            "id": created["id"],
            "session_id": created.get("session_id", row["session_id"]),
            "client_id": created.get("client_id", client_id),
            "created_at": created.get("created_at"),
        }

    async def save(
        self,
        session_id: str,
        document: dict[str, Any],
        yaml_text: str | None = None,
        call_duration: int | None = None,
    ) -> dict[str, Any]:
        """Persist a discovery document, creating the row if needed.

        The document is completed with defaults, the call duration is merged
        into `meta.callDuration`, and the denormalized columns are refreshed.

        Args:
            session_id: Session identifier; wins over `meta.sessionId`.
            document: Possibly partial discovery document.
            yaml_text: Pre-rendered text payload; rendered when omitted.
            call_duration: Elapsed call seconds.

        Returns:
            dict: The saved row.

        Raises:
            ValueError: If the document fails validation.
        """
        document = normalize_document(document, session_id)
        document["meta"]["sessionId"] = session_id
        if call_duration is not None:
            document["meta"]["callDuration"] = call_duration
        if yaml_text is None:
            yaml_text = to_text(document)

        row = {
            **extract_columns(document),
            "session_id": session_id,
            "json_payload": document,
            "yaml_payload": yaml_text,
        }
        response = (
            self.client.table(self.TABLE)
            .upsert(row, on_conflict="session_id")
            .execute()
        )
        logger.debug("Saved discovery session %s", session_id)
        return response.data[0]

    async def export(
        self,
        session_id: str,
        document: dict[str, Any],
        yaml_text: str | None = None,
    ) -> dict[str, Any]:
        """Write the document as JSON and text files to the export directory.

        Args:
            session_id: Session identifier.
            document: Discovery document.
            yaml_text: Pre-rendered text payload; rendered when omitted.

        Returns:
            dict: `export_path` and the `json`/`yaml` filenames.
        """
        document = normalize_document(document, session_id)
        if yaml_text is None:
            yaml_text = to_text(document)

        export_dir: Path = await self.storage.discovery_export_dir()
        json_name = filename_for(document, "json")
        yaml_name = filename_for(document, "yaml")
        (export_dir / json_name).write_text(to_json(document), encoding="utf-8")
        (export_dir / yaml_name).write_text(yaml_text, encoding="utf-8")

        logger.info("Exported discovery session %s to %s", session_id, export_dir)
        return {"export_path": str(export_dir), "json": json_name, "yaml": yaml_name}
