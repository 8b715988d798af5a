import json
import logging
import os
from pathlib import Path
from typing import List, Optional

import dotenv
from pydantic import BaseModel, ValidationError as PydanticValidationError

from scoutserver.enums import ScoutingConfig
from scoutserver.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _split_csv(raw: Optional[str], lower: bool = False) -> List[str]:
    items = [s.strip() for s in (raw or "").split(",")]
    return [s.lower() if lower else s for s in items if s]


class Settings(BaseModel):
    scouting_config: Path = Path("scouting-config.json")
    database_path: Path = Path("scouting.db")
    upload_dir: Path = Path("uploads")
    public_dir: Path = Path("public")
    google_client_id: Optional[str] = None
    initial_admin_emails: List[str] = []
    session_hours: float = 8
    cors_origins: List[str] = []
    port: int = 3000

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (and a .env file, if present)."""
        dotenv.load_dotenv(dotenv.find_dotenv(usecwd=True))
        admins = os.getenv("INITIAL_ADMIN_EMAILS") or os.getenv("ALLOWED_EDIT_EMAILS")
        try:
            return cls(
                scouting_config=os.getenv("SCOUTING_CONFIG", "scouting-config.json"),
                database_path=os.getenv("DATABASE_PATH", "scouting.db"),
                upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
                public_dir=os.getenv("PUBLIC_DIR", "public"),
                google_client_id=os.getenv("GOOGLE_CLIENT_ID") or None,
                initial_admin_emails=_split_csv(admins, lower=True),
                session_hours=os.getenv("SESSION_HOURS", "8"),
                cors_origins=_split_csv(os.getenv("CORS_ORIGINS")),
                port=os.getenv("PORT", "3000"),
            )
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid environment settings: {e}") from e


def parse_scouting_config(data: dict) -> ScoutingConfig:
    """Validate an already-decoded configuration document."""
    if not isinstance(data, dict) or not isinstance(data.get("scoutingTypes"), dict):
        raise ConfigurationError("Field configuration must contain a 'scoutingTypes' object")
    try:
        return ScoutingConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid field configuration: {e}") from e


def load_scouting_config(path: Path | str) -> ScoutingConfig:
    """
    Read and validate the field configuration JSON.
    Raises ConfigurationError on any problem; the server must not start with a bad config.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read field configuration {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Field configuration {path} is not valid JSON: {e}") from e

    config = parse_scouting_config(data)
    logger.info("Loaded scouting types: %s", list(config.scouting_types))
    return config
