# remote store: cloud side of the persistence interface
# journal entries are read-only here; patterns, occupation and profile are mirrored
#
# every method raises on failure, callers decide whether the cloud is best-effort

import logging
from datetime import datetime, timezone
from typing import Optional

from moodcast.models.journal import JournalEntry
from moodcast.models.pattern import OccupationType, PersonalPattern, UserMoodProfile
from moodcast.services.db import Database

logger = logging.getLogger(__name__)


class RemoteStoreUnavailable(Exception):
    """raised when no cloud connection is configured"""


class RemoteStore:
    """mongodb-backed cloud persistence for one deployment"""

    def __init__(self, db: Database):
        self.db = db

    def _require_connection(self):
        if not self.db.is_connected:
            raise RemoteStoreUnavailable("cloud store is not connected")

    # journal entries

    async def get_entries(self, user_id: str, since: Optional[datetime] = None) -> list[JournalEntry]:
        """entries for a user, newest first"""
        self._require_connection()
        query: dict = {"user_id": user_id}
        if since is not None:
            query["created_at"] = {"$gte": since}

        cursor = self.db.journals.find(query).sort("created_at", -1)
        entries = []
        async for doc in cursor:
            try:
                entries.append(JournalEntry.from_document(doc))
            except Exception as e:
                logger.warning(f"Skipping malformed journal {doc.get('_id')}: {e}")
        return entries

    # patterns

    async def load_patterns(self, user_id: str) -> list[PersonalPattern]:
        self._require_connection()
        cursor = self.db.mood_patterns.find({"user_id": user_id})
        patterns = []
        async for doc in cursor:
            try:
                patterns.append(PersonalPattern.from_document(doc))
            except Exception as e:
                logger.warning(f"Skipping malformed pattern {doc.get('id')}: {e}")
        return patterns

    async def save_pattern(self, pattern: PersonalPattern):
        """upsert by pattern id"""
        self._require_connection()
        await self.db.mood_patterns.replace_one(
            {"id": pattern.id},
            pattern.to_document(),
            upsert=True,
        )

    async def delete_pattern(self, pattern_id: str):
        self._require_connection()
        await self.db.mood_patterns.delete_one({"id": pattern_id})

    # occupation

    async def save_occupation_type(self, user_id: str, occupation_type: OccupationType):
        self._require_connection()
        await self.db.users.update_one(
            {"user_id": user_id},
            {"$set": {
                "occupation_type": occupation_type.value,
                "updated_at": datetime.now(timezone.utc),
            }},
            upsert=True,
        )

    async def load_occupation_type(self, user_id: str) -> OccupationType:
        self._require_connection()
        doc = await self.db.users.find_one({"user_id": user_id}, {"occupation_type": 1})
        if not doc or not doc.get("occupation_type"):
            return OccupationType.UNKNOWN
        try:
            return OccupationType(doc["occupation_type"])
        except ValueError:
            logger.warning(f"Unknown occupation type in cloud for {user_id}: {doc['occupation_type']}")
            return OccupationType.UNKNOWN

    # profile

    async def save_profile(self, profile: UserMoodProfile):
        self._require_connection()
        await self.db.user_mood_profiles.replace_one(
            {"user_id": profile.user_id},
            profile.to_document(),
            upsert=True,
        )

    async def load_profile(self, user_id: str) -> Optional[UserMoodProfile]:
        self._require_connection()
        doc = await self.db.user_mood_profiles.find_one({"user_id": user_id})
        if not doc:
            return None
        return UserMoodProfile.from_document(doc)
