"""Roles supplied by the authentication provider, and the checks built on them."""

from enum import Enum

from ordering.errors import Forbidden


class Role(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    MODERATOR = "moderator"


STAFF_ROLES = (Role.ADMIN.value, Role.MODERATOR.value)


def require_role(actor_role, *allowed):
    if actor_role not in allowed:
        raise Forbidden(f"Access denied. Requires role: {' or '.join(allowed)}")


def require_owner_or_role(order, actor_id, actor_role, *allowed):
    if actor_role in allowed or order.is_owned_by(actor_id):
        return
    raise Forbidden("Access denied. You can only access your own orders.")
