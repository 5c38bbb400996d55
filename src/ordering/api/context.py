"""Per-request caller identity.

Authentication happens upstream; the gateway in front of this service
forwards the authenticated user's id and role as ``X-User-Id`` and
``X-User-Role``. Routes receive a ``RequestContext`` and pass the ids it
carries into commands explicitly.
"""

from fastapi import Header, HTTPException
from pydantic import BaseModel

from ordering.access import STAFF_ROLES, Role
from ordering.utils.logging import bind_request


class RequestContext(BaseModel):
    user_id: str
    role: str = Role.CUSTOMER.value

    model_config = {"frozen": True}

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


async def get_request_context(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> RequestContext:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")

    role = (x_user_role or Role.CUSTOMER.value).lower()
    if role not in {r.value for r in Role}:
        raise HTTPException(status_code=401, detail=f"Unknown role '{x_user_role}'")

    bind_request(user_id=x_user_id, role=role)
    return RequestContext(user_id=x_user_id, role=role)
