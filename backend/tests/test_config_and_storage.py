"""
Unit tests for settings parsing and the optional Supabase sink.

Covers:
  - Settings: CSV/JSON list parsing, inference/supabase flags
  - RemoteAnalysisStore: disabled without credentials, upload/save/fetch calls,
    client failures wrapped as StorageError
"""

from __future__ import annotations

import os
from unittest.mock import MagicMock, patch

import pytest

from soilsense.core.config import Settings
from soilsense.core.errors import StorageError
from soilsense.core.storage import RemoteAnalysisStore, build_object_path
from soilsense.services.ai.soil.contracts import Prediction, SoilType
from soilsense.services.ai.soil.service import build_result

# ── Settings ─────────────────────────────────────────────────────────


class TestSettings:
    @patch.dict(os.environ, {"ALLOWED_IMAGE_TYPES": "image/png, image/webp"}, clear=False)
    def test_csv_list(self):
        assert Settings().allowed_image_types == ["image/png", "image/webp"]

    @patch.dict(os.environ, {"ALLOWED_IMAGE_TYPES": '["image/jpeg"]'}, clear=False)
    def test_json_list(self):
        assert Settings().allowed_image_types == ["image/jpeg"]

    def test_defaults(self):
        s = Settings(hf_api_token="", supabase_url="", supabase_key="")
        assert s.history_max_records == 50
        assert s.inference_max_attempts == 3
        assert s.inference_retry_delay_ms == 2000
        assert s.is_inference_configured is False
        assert s.is_supabase_configured is False
        assert s.inference_endpoint == "https://api-inference.huggingface.co/models/google/vit-base-patch16-224"

    @patch.dict(
        os.environ,
        {"SUPABASE_URL": "https://fake.supabase.co", "SUPABASE_ANON_KEY": "anon"},
        clear=False,
    )
    def test_supabase_anon_key_alias(self):
        s = Settings()
        assert s.supabase_key == "anon"
        assert s.is_supabase_configured is True


# ── Remote store ─────────────────────────────────────────────────────


def _result():
    return build_result(SoilType.SILTY, 72.0, [Prediction(label="silt", score=0.72)])


def test_from_settings_without_credentials_is_none():
    assert RemoteAnalysisStore.from_settings(Settings(supabase_url="", supabase_key="")) is None


def test_from_settings_builds_client():
    with patch("soilsense.core.storage.create_client") as mock_create:
        store = RemoteAnalysisStore.from_settings(
            Settings(supabase_url="https://fake.supabase.co", supabase_key="k")
        )
    assert isinstance(store, RemoteAnalysisStore)
    mock_create.assert_called_once_with("https://fake.supabase.co", "k")


def test_build_object_path_keeps_extension():
    path = build_object_path("My Soil.PNG")
    assert path.endswith("_My Soil.png")
    assert build_object_path(None).endswith("_soil")


def test_upload_returns_public_url():
    client = MagicMock()
    bucket = client.storage.from_.return_value
    bucket.upload.return_value = MagicMock(error=None)
    bucket.get_public_url.return_value = "https://fake.supabase.co/storage/v1/object/public/soil-images/x.png"
    store = RemoteAnalysisStore(client, bucket="soil-images", table="analyses")

    url = store.upload_soil_image(b"img", filename="x.png", content_type="image/png")

    assert url.endswith("x.png")
    client.storage.from_.assert_called_with("soil-images")
    path, content, options = bucket.upload.call_args.args
    assert content == b"img"
    assert options["content-type"] == "image/png"


def test_upload_failure_wrapped():
    client = MagicMock()
    client.storage.from_.return_value.upload.side_effect = RuntimeError("403")
    store = RemoteAnalysisStore(client, bucket="soil-images", table="analyses")

    with pytest.raises(StorageError):
        store.upload_soil_image(b"img", filename="x.png", content_type="image/png")


@pytest.mark.parametrize(
    "upload_result",
    [
        {"error": "Bucket not found"},
        MagicMock(error="new row violates row-level security policy"),
    ],
)
def test_upload_error_result_raises(upload_result):
    client = MagicMock()
    bucket = client.storage.from_.return_value
    bucket.upload.return_value = upload_result
    store = RemoteAnalysisStore(client, bucket="soil-images", table="analyses")

    with pytest.raises(StorageError):
        store.upload_soil_image(b"img", filename="x.png", content_type="image/png")
    bucket.get_public_url.assert_not_called()


def test_save_remote_analysis_inserts_row():
    client = MagicMock()
    client.table.return_value.insert.return_value.execute.return_value = MagicMock(data=[{"id": 7}])
    store = RemoteAnalysisStore(client, bucket="soil-images", table="analyses")

    row = store.save_remote_analysis("https://cdn.test/x.png", _result())

    assert row == {"id": 7}
    inserted = client.table.return_value.insert.call_args.args[0]
    assert inserted["image_url"] == "https://cdn.test/x.png"
    assert inserted["results"]["soil_type"] == "silty"


def test_fetch_remote_history_paginates():
    client = MagicMock()
    query = client.table.return_value.select.return_value.order.return_value.range.return_value
    query.execute.return_value = MagicMock(data=[{"id": 1}, {"id": 2}])
    store = RemoteAnalysisStore(client, bucket="soil-images", table="analyses")

    rows = store.fetch_remote_history(limit=2, offset=4)

    assert rows == [{"id": 1}, {"id": 2}]
    client.table.return_value.select.return_value.order.assert_called_once_with("created_at", desc=True)
    client.table.return_value.select.return_value.order.return_value.range.assert_called_once_with(4, 5)
