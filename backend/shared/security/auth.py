"""
Actor identity supplied by the upstream identity collaborator.

Authentication happens before requests reach this service: a gateway
verifies the caller and injects ``X-Actor-Id`` and ``X-Actor-Role``.
This module only reads and validates those headers.
"""

from dataclasses import dataclass

from fastapi import Header

from shared.config.constants import Roles
from shared.config.logging import get_logger
from shared.utils.exceptions import AuthenticationError

logger = get_logger(__name__)

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"
MAX_ACTOR_ID_LENGTH = 64


@dataclass(frozen=True)
class ActorContext:
    """Who is making the request."""

    actor_id: str
    role: str


def parse_actor(actor_id: str | None, role: str | None) -> ActorContext:
    """
    Build an ActorContext from raw header values.

    Raises:
        AuthenticationError: If either header is missing or malformed.
    """
    if not actor_id or not actor_id.strip():
        raise AuthenticationError(f"Missing {ACTOR_ID_HEADER} header")
    if not role or not role.strip():
        raise AuthenticationError(f"Missing {ACTOR_ROLE_HEADER} header")

    actor_id = actor_id.strip()
    role = role.strip().upper()

    if len(actor_id) > MAX_ACTOR_ID_LENGTH:
        raise AuthenticationError("Actor id too long")
    if role not in Roles.ALL:
        raise AuthenticationError(f"Unknown actor role: {role}", role=role)

    return ActorContext(actor_id=actor_id, role=role)


def current_actor(
    x_actor_id: str | None = Header(default=None, alias=ACTOR_ID_HEADER),
    x_actor_role: str | None = Header(default=None, alias=ACTOR_ROLE_HEADER),
) -> ActorContext:
    """
    FastAPI dependency returning the calling actor.

    Usage:
        @router.get("/orders")
        def list_orders(actor: ActorContext = Depends(current_actor)):
            ...
    """
    return parse_actor(x_actor_id, x_actor_role)
