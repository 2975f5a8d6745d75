"""HTTP API layer: routes, request/response schemas and middleware."""

from rightsdesk.api.routes import router

__all__ = ["router"]
