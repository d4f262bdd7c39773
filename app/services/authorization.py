# app/services/authorization.py
"""
Owner-or-admin authorization.

Each protected resource type exposes ``owner_ids()``: an appointment is owned
by the users assigned to it, a user record by that user. The gate never
inspects resource fields directly.
"""
from __future__ import annotations

from typing import Awaitable, Callable, Protocol, TypeVar

import structlog

from app.core.errors import ForbiddenError
from app.schemas.auth import Principal

logger = structlog.get_logger(__name__)


class OwnedResource(Protocol):
    def owner_ids(self) -> set[str]: ...


R = TypeVar("R", bound=OwnedResource)


def is_owner(principal: Principal, resource: OwnedResource) -> bool:
    return principal.id in resource.owner_ids()


async def authorize(
    principal: Principal,
    resource_id: str,
    load: Callable[[str], Awaitable[R]],
) -> R | None:
    """
    Allow admins outright; otherwise load the resource and require ownership.

    ``load`` raises NotFoundError for a missing id. Returns the loaded
    resource, or None when the admin shortcut skipped loading.
    """
    if principal.is_admin:
        return None

    resource = await load(resource_id)
    if not is_owner(principal, resource):
        logger.warning(
            "authorization_denied",
            principal_id=principal.id,
            role=principal.role.value,
            resource_id=resource_id,
        )
        raise ForbiddenError("Access denied", resource_id=resource_id)

    return resource
