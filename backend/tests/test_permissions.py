"""
Tests for the capability table and actor header parsing.
"""

import pytest

from shared.config.constants import Roles
from shared.security.auth import MAX_ACTOR_ID_LENGTH, parse_actor
from shared.utils.exceptions import AuthenticationError, ForbiddenError
from rest_api.services.permissions import (
    CAPABILITY_ROLES,
    Capability,
    authorize,
    capability_for_item_transition,
    capability_for_transition,
    is_allowed,
    require_capability,
)


class TestCapabilityTable:

    def test_every_capability_is_mapped(self):
        assert set(CAPABILITY_ROLES) == set(Capability)

    @pytest.mark.parametrize(
        "role,capability,allowed",
        [
            (Roles.SERVER, Capability.ORDER_CREATE, True),
            (Roles.COUNTER, Capability.ORDER_CANCEL, True),
            (Roles.KITCHEN, Capability.ORDER_CREATE, False),
            (Roles.KITCHEN, Capability.KITCHEN_PROGRESS, True),
            (Roles.SERVER, Capability.KITCHEN_PROGRESS, False),
            (Roles.KITCHEN, Capability.ORDER_SERVE, True),
            (Roles.SERVER, Capability.ORDER_SERVE, True),
            (Roles.PAYMENT, Capability.PAYMENT_COMPLETE, True),
            (Roles.SERVER, Capability.PAYMENT_COMPLETE, False),
            (Roles.PAYMENT, Capability.ORDER_CONFIRM, False),
            (Roles.KITCHEN, Capability.INVENTORY_READ, True),
            (Roles.KITCHEN, Capability.INVENTORY_ADJUST, False),
            (Roles.MANAGER, Capability.INVENTORY_ADJUST, True),
            (Roles.ADMIN, Capability.RECIPE_MANAGE, True),
        ],
    )
    def test_is_allowed(self, role, capability, allowed):
        assert is_allowed(role, capability) is allowed

    def test_every_role_reads_orders(self):
        assert all(is_allowed(role, Capability.ORDER_READ) for role in Roles.ALL)

    def test_unknown_role_has_nothing(self):
        assert not any(is_allowed("GUEST", capability) for capability in Capability)

    def test_authorize_raises_forbidden(self):
        with pytest.raises(ForbiddenError) as exc_info:
            authorize(Roles.KITCHEN, Capability.ORDER_CANCEL)
        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "forbidden"

    def test_authorize_passes(self):
        authorize(Roles.MANAGER, Capability.ORDER_CANCEL)

    def test_require_capability_dependency(self, server_actor, kitchen_actor):
        dependency = require_capability(Capability.KITCHEN_VIEW)
        assert dependency(kitchen_actor) is kitchen_actor
        with pytest.raises(ForbiddenError):
            dependency(server_actor)


class TestTransitionCapabilities:

    @pytest.mark.parametrize(
        "target,capability",
        [
            ("confirmed", Capability.ORDER_CONFIRM),
            ("preparing", Capability.KITCHEN_PROGRESS),
            ("ready", Capability.KITCHEN_PROGRESS),
            ("served", Capability.ORDER_SERVE),
            ("cancelled", Capability.ORDER_CANCEL),
            ("completed", Capability.PAYMENT_COMPLETE),
        ],
    )
    def test_order_targets(self, target, capability):
        assert capability_for_transition(target) is capability

    def test_pending_has_no_capability(self):
        with pytest.raises(ValueError):
            capability_for_transition("pending")

    def test_item_targets(self):
        assert capability_for_item_transition("preparing") is Capability.KITCHEN_PROGRESS
        assert capability_for_item_transition("ready") is Capability.KITCHEN_PROGRESS
        assert capability_for_item_transition("served") is Capability.ORDER_SERVE
        with pytest.raises(ValueError):
            capability_for_item_transition("pending")


class TestParseActor:

    def test_role_is_normalized(self):
        actor = parse_actor("  cook-7 ", "kitchen")
        assert actor.actor_id == "cook-7"
        assert actor.role == Roles.KITCHEN

    @pytest.mark.parametrize(
        "actor_id,role",
        [
            (None, "SERVER"),
            ("", "SERVER"),
            ("server-1", None),
            ("server-1", "   "),
            ("server-1", "CHEF"),
            ("x" * (MAX_ACTOR_ID_LENGTH + 1), "SERVER"),
        ],
    )
    def test_rejected(self, actor_id, role):
        with pytest.raises(AuthenticationError) as exc_info:
            parse_actor(actor_id, role)
        assert exc_info.value.status_code == 401
