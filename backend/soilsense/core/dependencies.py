from fastapi import Request

from soilsense.services.ai.soil.service import SoilAnalyzer
from soilsense.services.history_store import HistoryStore


def get_analyzer(request: Request) -> SoilAnalyzer:
    analyzer = getattr(request.app.state, "analyzer", None)
    if analyzer is None:
        raise RuntimeError("Soil analyzer is not initialised")
    return analyzer


def get_history(request: Request) -> HistoryStore:
    return get_analyzer(request).history
