"""FastAPI dependency injection helpers."""

from fastapi import Request

from rescuemesh.services.coordinator import CoordinationService


def get_coordinator(request: Request) -> CoordinationService:
    """The coordinator owned by this application instance."""
    return request.app.state.coordinator
