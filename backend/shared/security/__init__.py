"""
Security module: actor identity from the upstream gateway.
"""

from shared.security.auth import (
    ActorContext,
    current_actor,
    parse_actor,
    ACTOR_ID_HEADER,
    ACTOR_ROLE_HEADER,
)

__all__ = [
    "ActorContext",
    "current_actor",
    "parse_actor",
    "ACTOR_ID_HEADER",
    "ACTOR_ROLE_HEADER",
]
