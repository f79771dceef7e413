import io

import httpx
import pytest
import pytest_asyncio
from PIL import Image

from soilsense.core.config import get_settings
from soilsense.services.ai.common.providers import BaseProvider
from soilsense.services.ai.soil.contracts import AnalysisMode, Prediction
from soilsense.services.ai.soil.service import SoilAnalyzer
from soilsense.services.history_store import HistoryStore


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Some tests mutate env vars; don't leak a cached Settings instance across tests.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_image(color=(140, 70, 55), size=(120, 80), fmt="PNG") -> bytes:
    """Encode a solid-color image."""
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


class StaticProvider(BaseProvider):
    """Provider returning fixed predictions (or raising a fixed error)."""

    name = "static"

    def __init__(self, predictions=None, error: Exception | None = None) -> None:
        self.predictions = predictions or [Prediction(label="clay soil", score=0.8)]
        self.error = error
        self.calls = 0

    async def classify(self, image_bytes: bytes) -> list[Prediction]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.predictions)


@pytest.fixture
def history(tmp_path) -> HistoryStore:
    return HistoryStore(tmp_path / "history.json", max_records=50)


@pytest.fixture
def provider() -> StaticProvider:
    return StaticProvider()


@pytest.fixture
def analyzer(history, provider) -> SoilAnalyzer:
    return SoilAnalyzer(
        mode=AnalysisMode.REAL_SERVICE,
        provider=provider,
        history=history,
        timeout_seconds=5.0,
    )


@pytest_asyncio.fixture
async def client(analyzer):
    """In-process ASGI client with the analyzer installed on app.state."""
    from soilsense.main import app

    previous = app.state.analyzer
    app.state.analyzer = analyzer
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.state.analyzer = previous
