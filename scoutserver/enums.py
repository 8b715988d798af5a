import re
from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Columns every scouting table is created with.
BASE_COLUMNS = ("id", "timestamp")

# Tables owned by the server itself; a scouting type may not claim them.
RESERVED_TABLES = frozenset({"users", "sessions", "sqlite_sequence"})


# ---------- Field configuration ----------
class FieldType(Enum):
    """Logical type of a form field. Decides both the widget and the storage column."""
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    TEXTAREA = "textarea"
    CHECKBOX = "checkbox"
    FILE = "file"


class Role(Enum):
    """Role stored in the users table. A missing row means no role at all."""
    ADMIN = "admin"
    UPLOAD = "upload"


class Capability(Enum):
    VIEW = "view"
    UPLOAD = "upload"
    EDIT = "edit"
    DELETE = "delete"
    MANAGE_USERS = "manage_users"


class FieldDescriptor(BaseModel):
    # Presentational keys (placeholder, min, max, ...) pass straight through to the client.
    model_config = ConfigDict(extra="allow")

    id: str
    label: str
    type: FieldType
    required: bool = False
    sortable: bool = False
    options: Optional[List[str]] = None
    accept: Optional[str] = None

    @field_validator("id")
    @classmethod
    def _valid_identifier(cls, v: str) -> str:
        if not IDENTIFIER.match(v):
            raise ValueError(f"field id {v!r} is not a valid column identifier")
        if v.lower() in BASE_COLUMNS:
            raise ValueError(f"field id {v!r} collides with a base column")
        return v

    def as_config(self) -> Dict[str, Any]:
        """The descriptor exactly as it was written in the configuration file."""
        data = self.model_dump(mode="json", exclude_unset=True)
        data.update(self.model_extra or {})
        return data


class ScoutingType(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str
    name: str
    description: str = ""
    table_name: str = Field(alias="tableName")
    fields: List[FieldDescriptor] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _default_table_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("tableName") and not data.get("table_name"):
            data = {**data, "tableName": f"{data.get('key')}_data"}
        return data

    @field_validator("table_name")
    @classmethod
    def _valid_table_name(cls, v: str) -> str:
        if not IDENTIFIER.match(v):
            raise ValueError(f"table name {v!r} is not a valid identifier")
        if v.lower() in RESERVED_TABLES:
            raise ValueError(f"table name {v!r} is reserved")
        return v

    @field_validator("fields")
    @classmethod
    def _unique_field_ids(cls, v: List[FieldDescriptor]) -> List[FieldDescriptor]:
        seen = set()
        for f in v:
            # SQLite column names are case-insensitive
            if f.id.lower() in seen:
                raise ValueError(f"duplicate field id {f.id!r}")
            seen.add(f.id.lower())
        return v

    @property
    def field_ids(self) -> List[str]:
        return [f.id for f in self.fields]

    @property
    def sortable_columns(self) -> List[str]:
        return [*BASE_COLUMNS, *self.field_ids]

    @property
    def file_fields(self) -> List[FieldDescriptor]:
        return [f for f in self.fields if f.type is FieldType.FILE]


class ScoutingConfig(BaseModel):
    scouting_types: Dict[str, ScoutingType] = Field(alias="scoutingTypes")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _inject_keys(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("scoutingTypes"), dict):
            types = {}
            for key, value in data["scoutingTypes"].items():
                types[key] = {**value, "key": key} if isinstance(value, dict) else value
            data = {**data, "scoutingTypes": types}
        return data

    @model_validator(mode="after")
    def _unique_tables(self) -> "ScoutingConfig":
        seen: Dict[str, str] = {}
        for key, t in self.scouting_types.items():
            table = t.table_name.lower()
            if table in seen:
                raise ValueError(f"types {seen[table]!r} and {key!r} share table {t.table_name!r}")
            seen[table] = key
        return self

    def get(self, key: str) -> Optional[ScoutingType]:
        return self.scouting_types.get(key)


# ---------- Session / Auth Models ----------
class SessionInfo(BaseModel):
    email: str
    name: str
