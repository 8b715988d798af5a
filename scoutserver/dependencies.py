from fastapi import Request

from scoutserver.config import Settings
from scoutserver.db import Store
from scoutserver.enums import ScoutingConfig, ScoutingType
from scoutserver.errors import NotFoundError


# Objects built once in create_app() and parked on app.state.
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_scouting_config(request: Request) -> ScoutingConfig:
    return request.app.state.scouting_config


def get_scouting_type(type: str, request: Request) -> ScoutingType:
    """Path dependency for every `/{type}` route."""
    stype = get_scouting_config(request).get(type)
    if stype is None:
        raise NotFoundError("Scouting type not found")
    return stype
