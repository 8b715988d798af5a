"""
Authorization gate.

Identity comes from the session named by the `x-uuid` header. The role is looked up
in the users table on every request, so a change made by an admin applies to the
affected user's very next call.
"""
from dataclasses import dataclass
from typing import Annotated, Awaitable, Callable, FrozenSet, Optional

from fastapi import Depends, Header

from scoutserver.db import Store
from scoutserver.dependencies import get_store
from scoutserver.enums import Capability, Role, SessionInfo
from scoutserver.errors import AuthenticationError, AuthorizationError

CAPABILITIES = {
    Role.ADMIN: frozenset({
        Capability.VIEW, Capability.UPLOAD, Capability.EDIT,
        Capability.DELETE, Capability.MANAGE_USERS,
    }),
    Role.UPLOAD: frozenset({Capability.VIEW, Capability.UPLOAD}),
    None: frozenset({Capability.VIEW}),
}

DENIED_MESSAGES = {
    Capability.UPLOAD: "You do not have permission to submit or upload. Ask an admin to grant you access.",
    Capability.EDIT: "Admin access required.",
    Capability.DELETE: "Admin access required.",
    Capability.MANAGE_USERS: "Admin access required.",
}

SIGN_IN_MESSAGE = "Sign in with Google to continue."


def capabilities_for(role: Optional[Role]) -> FrozenSet[Capability]:
    return CAPABILITIES[role]


@dataclass(frozen=True)
class Principal:
    """Who is calling and what they may do. `identity` is None for anonymous callers."""
    identity: Optional[SessionInfo]
    role: Optional[Role]

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        return capabilities_for(self.role)

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def authenticated(self) -> bool:
        return self.identity is not None

    def flags(self) -> dict:
        return {
            "canView": self.can(Capability.VIEW),
            "canUpload": self.can(Capability.UPLOAD),
            "canEdit": self.can(Capability.EDIT),
            "canDelete": self.can(Capability.DELETE),
            "canManageUsers": self.can(Capability.MANAGE_USERS),
        }


async def resolve_role(store: Store, email: Optional[str]) -> Optional[Role]:
    return await store.get_user_role(email)


# =================== FastAPI dependencies ===================

async def get_identity(
        store: Store = Depends(get_store),
        x_uuid: Annotated[Optional[str], Header(alias="x-uuid")] = None,
) -> Optional[SessionInfo]:
    if not x_uuid:
        return None
    s = await store.get_session(x_uuid)
    if s is None:
        return None
    return SessionInfo(email=s["email"], name=s["name"] or s["email"])


async def get_principal(
        store: Store = Depends(get_store),
        identity: Optional[SessionInfo] = Depends(get_identity),
) -> Principal:
    role = await resolve_role(store, identity.email) if identity else None
    return Principal(identity=identity, role=role)


def require_capability(required: Capability) -> Callable[..., Awaitable[Principal]]:
    """
    FastAPI dependency: 401 when nobody is signed in, 403 when the signed-in
    user's role does not grant `required`.
    """
    async def dep(principal: Principal = Depends(get_principal)) -> Principal:
        if required is not Capability.VIEW and not principal.authenticated:
            raise AuthenticationError(SIGN_IN_MESSAGE)
        if not principal.can(required):
            raise AuthorizationError(DENIED_MESSAGES.get(required, "Permission denied."))
        return principal
    return dep
