from fastapi import APIRouter

from scoutserver.endpoints import auth, general, scouting, users
from scoutserver.endpoints.general import status_router

router = APIRouter()
router.include_router(general.router)
router.include_router(auth.router)
router.include_router(scouting.router)
router.include_router(users.router)

__all__ = ["router", "status_router"]
