import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from soilsense.api.v1.soil import router as soil_router
from soilsense.core.config import get_settings
from soilsense.core.errors import SoilSenseError
from soilsense.services.ai.soil.service import build_soil_analyzer

settings = get_settings()

logger = logging.getLogger(__name__)

app = FastAPI(
    title="SoilSense API",
    version="1.0.0",
    docs_url="/docs" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.openapi_enabled else None,
)
app.state.analyzer = None


@app.on_event("startup")
async def _startup_analyzer():
    if app.state.analyzer is None:
        app.state.analyzer = build_soil_analyzer(get_settings())


if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods,
        allow_headers=["Content-Type", "Accept"],
    )

app.include_router(soil_router, prefix="/api/v1", tags=["soil"])


@app.exception_handler(SoilSenseError)
async def _soil_error_handler(request: Request, exc: SoilSenseError):
    if exc.status_code >= 500:
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Hide internal details for 5xx unless explicitly enabled.
    if exc.status_code >= 500 and not settings.expose_error_details:
        return JSONResponse(status_code=exc.status_code, content={"detail": "Internal server error"})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    if settings.expose_error_details:
        return JSONResponse(status_code=500, content={"detail": str(exc)})
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
def health(request: Request):
    analyzer = request.app.state.analyzer
    return {
        "status": "ok",
        "mode": analyzer.mode.value if analyzer is not None else None,
    }
