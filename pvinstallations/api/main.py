"""
FastAPI application entry point for the PV installations API.

Provides the root status endpoint and wires the routers. Environment
variables are loaded and validated at startup. API_TOKENS are loaded into
app.state.api_tokens for the bearer authentication dependency.

CHANGELOG:
- 2026-10-20: Load API tokens strictly at startup
- 2026-10-14: Structured JSON logging at startup
- 2026-10-13: Register reports router
- 2026-10-12: Register installations router
- 2026-10-11: Initial creation
"""

import json
import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI

from pvinstallations.api.health import router as health_router
from pvinstallations.api.installations import router as installations_router
from pvinstallations.api.reports import router as reports_router
from pvinstallations.auth.bearer import load_api_tokens
from pvinstallations.db.session import dispose_engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class _JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO") -> None:
    """Install a JSON-formatted stderr handler on the root logger.

    Args:
        level: Root log level name; unknown names fall back to INFO.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    resolved = logging.getLevelName(level.upper())
    root.setLevel(resolved if isinstance(resolved, int) else logging.INFO)


def _load_env_config() -> dict[str, str]:
    """Load and validate required environment variables at startup.

    Returns:
        dict: Mapping of config key to value.

    Raises:
        RuntimeError: If a required environment variable is missing.
    """
    required = ["DATABASE_URL", "REDIS_URL", "API_TOKENS"]
    config: dict[str, str] = {}
    missing: list[str] = []

    for key in required:
        value = os.environ.get(key)
        if not value:
            missing.append(key)
        else:
            config[key] = value

    if missing:
        raise RuntimeError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    config["CACHE_TTL_S"] = os.environ.get("CACHE_TTL_S", "30")

    return config


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup validation and engine disposal.

    Startup:
        - Validates required environment variables.
        - Loads the API client tokens from API_TOKENS.

    Shutdown:
        - Disposes the database engine.
    """
    config = _load_env_config()
    app.state.config = config

    try:
        app.state.api_tokens = load_api_tokens(config["API_TOKENS"])
    except ValueError as exc:
        raise RuntimeError(f"Invalid API_TOKENS: {exc}") from exc
    logger.info("Loaded %d API token(s) from API_TOKENS", len(app.state.api_tokens))

    logger.info("Environment validated, PV installations API ready")
    yield
    await dispose_engine()
    logger.info("PV installations API shutting down")


app = FastAPI(
    title="PV Installations API",
    description="Production reports and per-minute timelines for PV installations.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(installations_router)
app.include_router(reports_router)


@app.get("/")
async def root() -> dict:
    """Root status endpoint.

    Returns:
        dict: JSON object with application status.
    """
    return {"status": "ok"}


def main() -> None:
    """Run the API under uvicorn with JSON logging."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
    uvicorn.run(
        app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
