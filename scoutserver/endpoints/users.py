from typing import Any, Dict, Optional

from fastapi import Depends, Body, APIRouter

from scoutserver.db import Store
from scoutserver.dependencies import get_store
from scoutserver.enums import Capability
from scoutserver.permissions import Principal, require_capability

router = APIRouter(prefix="/api/users")

# Admins may change or remove any user, themselves included.
manage_users = require_capability(Capability.MANAGE_USERS)


@router.get("")
async def list_users(
        _: Principal = Depends(manage_users),
        store: Store = Depends(get_store),
):
    return {"users": await store.list_users()}


@router.post("", status_code=201)
async def add_user(
        _: Principal = Depends(manage_users),
        body: Optional[Dict[str, Any]] = Body(None),
        store: Store = Depends(get_store),
):
    body = body or {}
    user = await store.add_user(body.get("email"), body.get("role"))
    return {"success": True, **user}


@router.put("/{email}")
async def update_user(
        email: str,
        _: Principal = Depends(manage_users),
        body: Optional[Dict[str, Any]] = Body(None),
        store: Store = Depends(get_store),
):
    user = await store.update_user_role(email, (body or {}).get("role"))
    return {"success": True, **user}


@router.delete("/{email}")
async def delete_user(
        email: str,
        _: Principal = Depends(manage_users),
        store: Store = Depends(get_store),
):
    await store.delete_user(email)
    return {"success": True}
