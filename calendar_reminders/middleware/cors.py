"""CORS configuration for the calendar frontend."""
import logging

from fastapi.middleware.cors import CORSMiddleware

from calendar_reminders.config import Settings

logger = logging.getLogger(__name__)

# Base allowed origins for development
DEV_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",  # Vite dev server
]


def allowed_origins(settings: Settings) -> list:
    origins = list(DEV_ORIGINS)
    if settings.frontend_url and settings.frontend_url not in origins:
        origins.append(settings.frontend_url)
    return origins


def add_cors_middleware(app, settings: Settings):
    """Add CORS middleware to the FastAPI application."""
    if settings.is_production:
        # Only the configured frontend in production
        origins = [settings.frontend_url]
    else:
        origins = allowed_origins(settings)

    logger.info(f"CORS environment={settings.environment} origins={origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
