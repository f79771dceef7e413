import logging
import time
from pathlib import Path
from typing import Any, Optional

from supabase import Client, create_client

from soilsense.core.config import Settings
from soilsense.core.errors import StorageError
from soilsense.services.ai.soil.contracts import AnalysisResult

logger = logging.getLogger(__name__)


def _file_extension(filename: Optional[str]) -> str:
    if not filename:
        return ""
    return Path(filename).suffix.lower()


def build_object_path(filename: Optional[str]) -> str:
    stem = Path(filename).stem if filename else "soil"
    return f"{int(time.time() * 1000)}_{stem}{_file_extension(filename)}"


class RemoteAnalysisStore:
    """Optional Supabase mirror: image bucket plus an ``analyses`` table."""

    def __init__(self, client: Client, *, bucket: str, table: str) -> None:
        self._client = client
        self._bucket = bucket
        self._table = table

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["RemoteAnalysisStore"]:
        if not settings.is_supabase_configured:
            logger.info("Supabase not configured, running in local-only mode")
            return None
        client = create_client(settings.supabase_url, settings.supabase_key)
        return cls(client, bucket=settings.supabase_bucket, table=settings.supabase_table)

    def upload_soil_image(
        self,
        content: bytes,
        *,
        filename: Optional[str],
        content_type: Optional[str],
    ) -> str:
        """Upload the image and return its public URL."""
        path = build_object_path(filename)
        options = {"cache-control": "3600", "upsert": "false"}
        if content_type:
            options["content-type"] = content_type
        bucket = self._client.storage.from_(self._bucket)
        try:
            result = bucket.upload(path, content, options)
        except Exception as exc:
            raise StorageError("Failed to upload image to remote storage") from exc

        error = None
        if isinstance(result, dict):
            error = result.get("error")
        else:
            error = getattr(result, "error", None)
        if error:
            raise StorageError(f"Remote storage rejected upload: {error}")

        try:
            return bucket.get_public_url(path)
        except Exception as exc:
            raise StorageError("Failed to resolve public URL for uploaded image") from exc

    def save_remote_analysis(self, image_url: str, result: AnalysisResult) -> dict[str, Any]:
        row = {
            "image_url": image_url,
            "results": result.model_dump(mode="json"),
            "created_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }
        try:
            response = self._client.table(self._table).insert(row).execute()
        except Exception as exc:
            raise StorageError("Failed to save analysis to remote storage") from exc
        data = getattr(response, "data", None) or []
        return data[0] if data else row

    def fetch_remote_history(self, *, limit: int = 10, offset: int = 0) -> list[dict[str, Any]]:
        try:
            response = (
                self._client.table(self._table)
                .select("*")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as exc:
            raise StorageError("Failed to load remote history") from exc
        return list(getattr(response, "data", None) or [])
