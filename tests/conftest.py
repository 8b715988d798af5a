import asyncio
import uuid
from datetime import datetime, timezone, timedelta

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from scoutserver.config import Settings, parse_scouting_config
from scoutserver.db import Store
from scoutserver.main import create_app
from scoutserver.schema import init_db

CONFIG = {
    "scoutingTypes": {
        "prematch": {
            "name": "Pre-Match",
            "description": "Before the match",
            "tableName": "prematch_data",
            "fields": [
                {"id": "teamNumber", "label": "Team Number", "type": "text", "required": True, "sortable": True,
                 "placeholder": "e.g. 254"},
                {"id": "matchNumber", "label": "Match Number", "type": "number", "sortable": True},
                {"id": "startPosition", "label": "Start", "type": "select", "options": ["Left", "Center", "Right"]},
                {"id": "hasAuto", "label": "Has Auto", "type": "checkbox"},
                {"id": "notes", "label": "Notes", "type": "textarea"},
            ],
        },
        "pit": {
            "name": "Pit",
            "description": "In the pits",
            "tableName": "pit_data",
            "fields": [
                {"id": "teamNumber", "label": "Team Number", "type": "text", "required": True},
                {"id": "drivetrain", "label": "Drivetrain", "type": "text", "required": True},
                {"id": "robotPicture", "label": "Robot Picture", "type": "file", "required": True,
                 "accept": "image/*"},
            ],
        },
    }
}

ADMIN = "admin@example.com"
UPLOADER = "scout@example.com"
NOBODY = "visitor@example.com"


@pytest.fixture
def scouting_config():
    return parse_scouting_config(CONFIG)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        scouting_config=tmp_path / "unused.json",
        database_path=tmp_path / "scouting.db",
        upload_dir=tmp_path / "uploads",
        public_dir=tmp_path / "public",
        initial_admin_emails=[ADMIN],
    )


@pytest_asyncio.fixture
async def store(settings, scouting_config):
    s = Store(settings.database_path, settings.upload_dir)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    await init_db(s, scouting_config, settings.initial_admin_emails)
    return s


@pytest.fixture
def app(settings, scouting_config):
    return create_app(settings, scouting_config)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def sign_in(store: Store, email: str, role: str | None = None, hours: float = 1) -> dict:
    """Create a session (and optionally a user row) directly; returns request headers."""
    async def _setup():
        if role and await store.get_user_role(email) is None:
            await store.add_user(email, role)
        session_id = str(uuid.uuid4())
        expires = datetime.now(timezone.utc) + timedelta(hours=hours)
        await store.add_session(session_id, email, email.split("@")[0], expires)
        return session_id

    return {"x-uuid": asyncio.run(_setup())}


@pytest.fixture
def admin_headers(client, app):
    return sign_in(app.state.store, ADMIN)


@pytest.fixture
def upload_headers(client, app):
    return sign_in(app.state.store, UPLOADER, "upload")


@pytest.fixture
def no_role_headers(client, app):
    return sign_in(app.state.store, NOBODY)
