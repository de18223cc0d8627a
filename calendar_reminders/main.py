"""Main FastAPI application for the calendar reminder service."""
import logging

from fastapi import FastAPI

from calendar_reminders import __version__
from calendar_reminders.config import get_settings
from calendar_reminders.middleware.cors import add_cors_middleware
from calendar_reminders.routers import events, recurrence, reminders

settings = get_settings()

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Calendar Reminders API",
    description="Recurrence rule codec and upcoming-event reminders for the calendar frontend",
    version=__version__,
)

add_cors_middleware(app, settings)


@app.on_event("startup")
async def startup_event():
    logger.info(f"Calendar backend: {settings.calendar_api_url}")
    logger.info(f"Permission preferences stored in {settings.preference_store_path}")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/")
async def root():
    """Root endpoint - API welcome message."""
    return {
        "title": "Calendar Reminders API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "events": "/api/events",
        "reminders": "/ws/reminders/{client_id}",
    }


app.include_router(recurrence.router, prefix="/api")  # /api/recurrence/...
app.include_router(events.router, prefix="/api")  # /api/events/...
app.include_router(reminders.router)  # /ws/reminders/{client_id}, /metrics


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "calendar_reminders.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
