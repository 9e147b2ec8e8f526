import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

SNAPSHOT_VERSION = 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_item_id() -> str:
    return uuid.uuid4().hex


class MediaItem(BaseModel):
    # legacy snapshots used path/originalName/size/duration/addedAt
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default_factory=new_item_id)
    source_ref: str = Field(validation_alias=AliasChoices("source_ref", "path"))
    display_name: str = Field(validation_alias=AliasChoices("display_name", "originalName", "name"))
    size_bytes: int = Field(0, validation_alias=AliasChoices("size_bytes", "size"))
    duration_seconds: Optional[float] = Field(
        None, validation_alias=AliasChoices("duration_seconds", "duration")
    )
    added_at: datetime = Field(default_factory=_utcnow, validation_alias=AliasChoices("added_at", "addedAt"))
    filename: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.display_name,
            "size": self.size_bytes,
            "duration": self.duration_seconds,
            "added_at": self.added_at.isoformat(),
        }


class PlaylistSnapshot(BaseModel):
    version: int = SNAPSHOT_VERSION
    items: List[MediaItem] = []


class ReorderPayload(BaseModel):
    order: List[str]
