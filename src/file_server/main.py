from textwrap import dedent
import logging
import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute

from file_server.errors import (
    FileRegistryError,
    handle_broad_exceptions,
    handle_file_registry_errors,
    handle_pydantic_validation_errors,
)
from file_server.registry import FileRegistry, build_registry
from file_server.routers.files import router as files_router
from file_server.routers.health import router as health_router
from file_server.config.settings import Settings

# Set up logging
logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(settings: Settings | None = None, registry: FileRegistry | None = None) -> FastAPI:
    """
    Create a FastAPI application.

    Store clients are built here once and shared by every request through
    ``app.state.registry``. Pass ``registry`` to supply prebuilt stores.
    """
    settings = settings or Settings()

    app = FastAPI(
        title=settings.app_name,
        summary="Store files per owner",
        version="v1",
        description=dedent(
            """\
        Upload, list, download and delete files.

        Requests are made on behalf of the principal in the configured owner header.
        """
        ),
        docs_url="/",  # its easier to find the docs when they live on the base url
        generate_unique_id_function=custom_generate_unique_id,
    )

    if registry is None:
        registry = build_registry(settings)
    logger.info("initializing metadata index and content store")
    registry.metadata_index.init_collections()
    registry.content_store.init_store()

    app.state.settings = settings
    app.state.registry = registry

    app.include_router(files_router, prefix="/v1", tags=["files"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(
        exc_class_or_status_code=FileRegistryError,
        handler=handle_file_registry_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    configure_logging(settings)
    app = create_app(settings)
    uvicorn.run(app, host="0.0.0.0", port=8000)
