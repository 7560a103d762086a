from fastapi import APIRouter, Request, Response, status
from fastapi.responses import PlainTextResponse

from file_server.errors import StoreUnavailableError
from file_server.registry import FileRegistry

router = APIRouter()


@router.get("/health")
def health_check(request: Request, response: Response):
    """
    Health check endpoint for monitoring API status and component readiness.

    Returns the status of the metadata index and the content store along with
    the deployment mode. Responds 503 while either store is unreachable.
    """
    registry: FileRegistry = request.app.state.registry

    health_status = {
        "status": "ok",
        "deployment_mode": request.app.state.settings.deployment_mode,
        "components": {
            "api": "ready",
            "metadata_index": "ready",
            "content_store": "ready",
        },
        "ready": True,
    }

    for component, ping in (
        ("metadata_index", registry.metadata_index.ping),
        ("content_store", registry.content_store.ping),
    ):
        try:
            ping()
        except StoreUnavailableError as e:
            health_status["components"][component] = f"error: {e.code}"
            health_status["status"] = "degraded"
            health_status["ready"] = False

    if not health_status["ready"]:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return health_status


@router.get("/healthcheck", response_class=PlainTextResponse)
def liveness_check() -> str:
    """Liveness probe; does not touch either store."""
    return "Alive"
