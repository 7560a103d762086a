"""FastAPI dependencies shared by the routers."""

import logging
from typing import Optional

from fastapi import Request

from file_server.config.settings import Settings
from file_server.errors import OwnerNotResolvedError
from file_server.registry import FileRegistry

logger = logging.getLogger(__name__)


def owner_from_principal(principal: str) -> str:
    """Reduce an e-mail style principal name to its local part.

    >>> owner_from_principal("jane.doe@example.com")
    'jane.doe'
    """
    return principal.strip().split("@", 1)[0]


def get_registry(request: Request) -> FileRegistry:
    return request.app.state.registry


def get_owner_id(request: Request) -> str:
    """
    Resolve the owner of the request.

    The principal header is set by the authenticating proxy in front of the
    service and is trusted as-is.
    """
    settings: Settings = request.app.state.settings
    principal: Optional[str] = request.headers.get(settings.owner_header)
    owner_id = owner_from_principal(principal) if principal else ""
    if owner_id:
        return owner_id
    if settings.default_owner:
        return settings.default_owner
    logger.info(f"Rejecting {request.method} {request.url.path}: no '{settings.owner_header}' header")
    raise OwnerNotResolvedError(f"Missing '{settings.owner_header}' header")
