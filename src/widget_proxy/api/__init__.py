"""
FastAPI API routes and endpoints.

- routes.py: POST /api/suggest-words, GET /health, GET /api/health/keys
- dependencies.py: Dependency injection for key pool, client, orchestrator
- models.py: API request/response models
- error_handlers.py: Exception handlers for structured error responses
- middleware.py: Request tracing
"""

from widget_proxy.api import dependencies, error_handlers, models
from widget_proxy.api.routes import router

__all__ = [
    "router",
    "dependencies",
    "error_handlers",
    "models",
]
