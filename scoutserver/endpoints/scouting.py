from typing import Any, Dict, Optional

from fastapi import Depends, Body, APIRouter, File, Query, UploadFile

from scoutserver import uploads
from scoutserver.config import Settings
from scoutserver.db import Store
from scoutserver.dependencies import get_scouting_config, get_scouting_type, get_settings, get_store
from scoutserver.enums import Capability, ScoutingConfig, ScoutingType
from scoutserver.permissions import Principal, require_capability

router = APIRouter(prefix="/api")


# === Configuration ===

@router.get("/scouting-types")
async def list_scouting_types(config: ScoutingConfig = Depends(get_scouting_config)):
    return {
        "scoutingTypes": {
            key: {"name": t.name, "description": t.description}
            for key, t in config.scouting_types.items()
        }
    }


@router.get("/fields/{type}")
async def get_fields(stype: ScoutingType = Depends(get_scouting_type)):
    """Field descriptors exactly as configured, in configuration order."""
    return {
        "name": stype.name,
        "description": stype.description,
        "fields": [f.as_config() for f in stype.fields],
    }


# === Submission ===

@router.post("/upload")
async def upload_file(
        _: Principal = Depends(require_capability(Capability.UPLOAD)),
        file: Optional[UploadFile] = File(None),
        settings: Settings = Depends(get_settings),
):
    return await uploads.save_upload(settings.upload_dir, file)


@router.post("/submit/{type}", status_code=201)
async def submit(
        _: Principal = Depends(require_capability(Capability.UPLOAD)),
        data: Optional[Dict[str, Any]] = Body(None),
        stype: ScoutingType = Depends(get_scouting_type),
        store: Store = Depends(get_store),
):
    entry_id = await store.add_entry(stype, data or {})
    return {
        "success": True,
        "id": entry_id,
        "message": "Scouting data saved successfully",
    }


# === Data ===

@router.get("/data/{type}")
async def list_data(
        sortBy: Optional[str] = Query(None),
        sortOrder: Optional[str] = Query(None),
        stype: ScoutingType = Depends(get_scouting_type),
        store: Store = Depends(get_store),
):
    return await store.list_entries(stype, sortBy, sortOrder)


@router.get("/data/{type}/{entry_id}")
async def get_data(
        entry_id: int,
        stype: ScoutingType = Depends(get_scouting_type),
        store: Store = Depends(get_store),
):
    return await store.get_entry(stype, entry_id)


@router.put("/data/{type}/{entry_id}")
async def update_data(
        entry_id: int,
        _: Principal = Depends(require_capability(Capability.EDIT)),
        data: Optional[Dict[str, Any]] = Body(None),
        stype: ScoutingType = Depends(get_scouting_type),
        store: Store = Depends(get_store),
):
    """
    Full overwrite. Every configured field is written from the body; a field the
    body leaves out is stored as NULL. Send the whole row, not a patch.
    """
    await store.update_entry(stype, entry_id, data or {})
    return {"success": True, "message": "Entry updated successfully"}


@router.delete("/data/{type}/{entry_id}")
async def delete_data(
        entry_id: int,
        _: Principal = Depends(require_capability(Capability.DELETE)),
        stype: ScoutingType = Depends(get_scouting_type),
        store: Store = Depends(get_store),
):
    await store.delete_entry(stype, entry_id)
    return {"success": True, "message": "Entry deleted successfully"}
