# journal models: read-only view of entries owned by the persistence layer
# mood is a 1-10 self-report, content is free text

import math
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class JournalEntry(BaseModel):
    """a journal entry as the engine sees it. never mutated here."""
    id: str
    user_id: str = Field(..., alias="userId")
    created_at: datetime = Field(..., alias="createdAt")
    content: str = ""
    mood: Optional[int] = None
    gratitude_items: Optional[list[str]] = Field(None, alias="gratitudeItems")
    tags: Optional[list[str]] = None

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("mood", mode="before")
    @classmethod
    def sanitize_mood(cls, value):
        # mongodb may hand back NaN or floats for mood
        if value is None:
            return None
        try:
            if isinstance(value, float) and math.isnan(value):
                return None
            mood = int(value)
        except (ValueError, TypeError):
            return None
        if mood < 1 or mood > 10:
            return None
        return mood

    @classmethod
    def from_document(cls, doc: dict) -> "JournalEntry":
        """build an entry from a journals collection document"""
        created = doc.get("created_at")
        if isinstance(created, str):
            created = datetime.fromisoformat(created.replace("Z", "+00:00"))
        return cls(
            id=str(doc.get("id") or doc.get("_id", "")),
            user_id=str(doc.get("user_id", "")),
            created_at=created,
            content=doc.get("content", "") or "",
            mood=doc.get("mood"),
            gratitude_items=doc.get("gratitude_items"),
            tags=doc.get("tags"),
        )
