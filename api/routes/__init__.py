"""API route handlers."""

from api.routes import health, jobs, resolve, status

__all__ = ["health", "jobs", "resolve", "status"]
