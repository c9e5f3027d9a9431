"""API route handlers."""

from src.api.openapi.routes import health, jobs, media, search, webhooks

__all__ = [
    "health",
    "jobs",
    "media",
    "search",
    "webhooks",
]
