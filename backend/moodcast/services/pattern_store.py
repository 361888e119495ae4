# personal pattern store: local-first storage of learned patterns per user
# every mutation is written to the local store before any cloud work is scheduled.
# cloud pushes are fire-and-forget asyncio tasks; their failures are logged, never raised.
# local writes stay on the event loop so each mutation is on disk before the next one runs;
# only the first read of a user goes to a worker thread (PatternStoreRegistry.aget).
#
# merge rule (add, sync): one pattern per (user, type, weekday, month-day).
# a candidate only replaces an existing record when its confidence is strictly higher.

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, Optional

from moodcast.models.pattern import (
    OccupationType,
    PatternType,
    PersonalPattern,
    UserMoodProfile,
)
from moodcast.services.local_store import LocalKeyValueStore, LocalStoreError
from moodcast.services.remote_store import RemoteStore

logger = logging.getLogger(__name__)


class PatternStoreError(Exception):
    """local persistence failed for an explicit user action"""


def merge_patterns(current: list[PersonalPattern], incoming: list[PersonalPattern]) -> list[PersonalPattern]:
    """fold incoming into current using the per-key confidence rule"""
    merged = list(current)
    index = {p.merge_key: i for i, p in enumerate(merged)}
    for candidate in incoming:
        position = index.get(candidate.merge_key)
        if position is None:
            index[candidate.merge_key] = len(merged)
            merged.append(candidate)
        elif candidate.confidence > merged[position].confidence:
            merged[position] = candidate
    return merged


class PersonalPatternStore:
    """patterns, occupation type and profile for one user"""

    def __init__(self, user_id: str, local: LocalKeyValueStore, remote: Optional[RemoteStore] = None):
        self.user_id = user_id
        self.local = local
        self.remote = remote

        self.patterns: list[PersonalPattern] = []
        self.occupation_type: OccupationType = OccupationType.UNKNOWN
        self.last_sync_date: Optional[datetime] = None
        self.profile: Optional[UserMoodProfile] = None

        self._pending: set[asyncio.Task] = set()
        self._syncing = False

    @property
    def _state_key(self) -> str:
        return f"pattern_state.{self.user_id}"

    @property
    def _profile_key(self) -> str:
        return f"mood_profile.{self.user_id}"

    # local persistence

    def load(self):
        """read state from local storage. corrupt data is treated as empty."""
        try:
            state = self.local.get(self._state_key, default={}) or {}
        except LocalStoreError as e:
            logger.warning(f"Local pattern state for {self.user_id} is unreadable, starting empty: {e}")
            state = {}

        patterns = []
        for doc in state.get("patterns", []):
            try:
                patterns.append(PersonalPattern.from_document(doc))
            except Exception as e:
                logger.warning(f"Dropping malformed local pattern for {self.user_id}: {e}")
        self.patterns = patterns

        try:
            self.occupation_type = OccupationType(state.get("occupation_type", OccupationType.UNKNOWN.value))
        except ValueError:
            self.occupation_type = OccupationType.UNKNOWN

        last_sync = state.get("last_sync_date")
        try:
            self.last_sync_date = datetime.fromisoformat(last_sync) if last_sync else None
        except (TypeError, ValueError):
            self.last_sync_date = None

        try:
            profile_doc = self.local.get(self._profile_key)
            self.profile = UserMoodProfile.from_document(profile_doc) if profile_doc else None
        except Exception as e:
            logger.warning(f"Local mood profile for {self.user_id} is unreadable: {e}")
            self.profile = None

        logger.info(f"Loaded {len(self.patterns)} patterns for {self.user_id} (occupation: {self.occupation_type.value})")

    def _persist(
        self,
        patterns: list[PersonalPattern],
        occupation_type: OccupationType,
        last_sync_date: Optional[datetime],
    ):
        """write the full state in one atomic step, then adopt it in memory"""
        state = {
            "patterns": [p.to_document() for p in patterns],
            "occupation_type": occupation_type.value,
            "last_sync_date": last_sync_date.isoformat() if last_sync_date else None,
        }
        try:
            self.local.set(self._state_key, state)
        except LocalStoreError as e:
            raise PatternStoreError(f"could not save patterns for {self.user_id}: {e}") from e

        self.patterns = patterns
        self.occupation_type = occupation_type
        self.last_sync_date = last_sync_date

    # fire-and-forget cloud work

    def _schedule_cloud(self, description: str, action: Callable[[RemoteStore], Awaitable]):
        if self.remote is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.info(f"No running event loop, skipping cloud {description} for {self.user_id}")
            return
        task = loop.create_task(self._best_effort(description, action))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _best_effort(self, description: str, action: Callable[[RemoteStore], Awaitable]):
        try:
            await action(self.remote)
        except Exception as e:
            logger.warning(f"Cloud {description} failed for {self.user_id}: {e}")

    async def wait_for_pending(self):
        """await outstanding cloud tasks"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # mutations

    def add_pattern(self, candidate: PersonalPattern) -> bool:
        """insert or replace by merge key. returns False when the candidate loses."""
        existing = next((p for p in self.patterns if p.merge_key == candidate.merge_key), None)
        if existing is not None and candidate.confidence <= existing.confidence:
            logger.debug(f"Keeping existing {existing.pattern_type.value} pattern ({existing.confidence:.2f} >= {candidate.confidence:.2f})")
            return False

        if existing is None:
            updated = self.patterns + [candidate]
        else:
            updated = [candidate if p.merge_key == candidate.merge_key else p for p in self.patterns]

        self._persist(updated, self.occupation_type, self.last_sync_date)
        logger.info(f"Stored {candidate.pattern_type.value} pattern '{candidate.name}' for {self.user_id}")

        self._schedule_cloud("pattern save", lambda remote: remote.save_pattern(candidate))
        if existing is not None and existing.id != candidate.id:
            self._schedule_cloud("pattern delete", lambda remote: remote.delete_pattern(existing.id))
        return True

    def set_occupation_type(self, occupation_type: OccupationType):
        """explicit override, persisted locally and mirrored to the cloud"""
        self._persist(self.patterns, occupation_type, self.last_sync_date)
        logger.info(f"Occupation type for {self.user_id} set to {occupation_type.value}")
        self._schedule_cloud(
            "occupation save",
            lambda remote: remote.save_occupation_type(self.user_id, occupation_type),
        )

    async def clear_patterns(self, user_id: Optional[str] = None) -> int:
        """remove a user's patterns locally, then delete each one remotely"""
        user_id = user_id or self.user_id
        removed = [p for p in self.patterns if p.user_id == user_id]
        kept = [p for p in self.patterns if p.user_id != user_id]
        self._persist(kept, self.occupation_type, self.last_sync_date)
        logger.info(f"Cleared {len(removed)} local patterns for {user_id}")

        if self.remote is not None:
            for pattern in removed:
                try:
                    await self.remote.delete_pattern(pattern.id)
                except Exception as e:
                    logger.warning(f"Cloud delete of pattern {pattern.id} failed: {e}")
        return len(removed)

    # queries

    def get_patterns_affecting(self, day: date) -> list[PersonalPattern]:
        if isinstance(day, datetime):
            day = day.date()
        return [p for p in self.patterns if p.applies_to(day)]

    def patterns_of_type(self, pattern_type: PatternType) -> list[PersonalPattern]:
        return [p for p in self.patterns if p.pattern_type == pattern_type]

    # cloud sync

    async def sync_with_cloud(self) -> bool:
        """merge local and cloud patterns. local state is untouched on failure."""
        if self.remote is None:
            logger.info(f"No cloud store configured, skipping sync for {self.user_id}")
            return False
        if self._syncing:
            logger.info(f"Sync already running for {self.user_id}, skipping")
            return False

        self._syncing = True
        try:
            remote_patterns = await self.remote.load_patterns(self.user_id)
            remote_occupation = await self.remote.load_occupation_type(self.user_id)

            merged = merge_patterns(self.patterns, remote_patterns)
            occupation = self.occupation_type
            if occupation == OccupationType.UNKNOWN and remote_occupation != OccupationType.UNKNOWN:
                logger.info(f"Adopting cloud occupation type {remote_occupation.value} for {self.user_id}")
                occupation = remote_occupation

            self._persist(merged, occupation, datetime.now(timezone.utc))
        except Exception as e:
            logger.warning(f"Pattern sync failed for {self.user_id}, keeping local state: {e}")
            return False
        finally:
            self._syncing = False

        # bring the cloud in line with the merge: upload winners it lacks, drop duplicates that lost
        remote_by_id = {p.id: p for p in remote_patterns}
        merged_ids = {p.id for p in merged}
        uploads = [p for p in merged if remote_by_id.get(p.id) != p]
        stale = [p for p in remote_patterns if p.id not in merged_ids]
        if uploads or stale:
            logger.info(f"Pushing {len(uploads)} patterns and removing {len(stale)} stale cloud patterns for {self.user_id}")
            results = await asyncio.gather(
                *(self.remote.save_pattern(p) for p in uploads),
                *(self.remote.delete_pattern(p.id) for p in stale),
                return_exceptions=True,
            )
            failures = [r for r in results if isinstance(r, Exception)]
            if failures:
                logger.warning(f"{len(failures)} cloud pattern updates failed for {self.user_id}: {failures[0]}")

        if self.occupation_type != OccupationType.UNKNOWN and self.occupation_type != remote_occupation:
            try:
                await self.remote.save_occupation_type(self.user_id, self.occupation_type)
            except Exception as e:
                logger.warning(f"Cloud occupation push failed for {self.user_id}: {e}")

        logger.info(f"Synced {len(self.patterns)} patterns for {self.user_id}")
        return True

    async def force_cloud_sync(self) -> bool:
        """replace local patterns with the cloud set, e.g. after reinstalling"""
        if self.remote is None:
            return False
        try:
            remote_patterns = await self.remote.load_patterns(self.user_id)
            remote_occupation = await self.remote.load_occupation_type(self.user_id)
        except Exception as e:
            logger.warning(f"Forced cloud sync failed for {self.user_id}: {e}")
            return False

        if not remote_patterns:
            logger.info(f"Cloud has no patterns for {self.user_id}, keeping local state")
            return False

        occupation = remote_occupation if remote_occupation != OccupationType.UNKNOWN else self.occupation_type
        self._persist(remote_patterns, occupation, datetime.now(timezone.utc))
        logger.info(f"Restored {len(remote_patterns)} patterns from cloud for {self.user_id}")
        return True

    # profile cache

    def build_profile(self) -> UserMoodProfile:
        """current profile, rebuilt from the pattern set"""
        previous = self.profile
        return UserMoodProfile(
            user_id=self.user_id,
            occupation_type=self.occupation_type,
            llm_summary=previous.llm_summary if previous else None,
            total_entries_analyzed=previous.total_entries_analyzed if previous else 0,
            last_extraction_date=previous.last_extraction_date if previous else None,
            pattern_count=len(self.patterns),
        )

    def record_extraction(self, entries_analyzed: int, summary: Optional[str] = None) -> UserMoodProfile:
        """update the profile counters after an extraction run"""
        profile = self.build_profile()
        profile.total_entries_analyzed += entries_analyzed
        profile.last_extraction_date = datetime.now(timezone.utc)
        if summary:
            profile.llm_summary = summary

        try:
            self.local.set(self._profile_key, profile.to_document())
        except LocalStoreError as e:
            # the profile is a rebuildable cache
            logger.warning(f"Could not save mood profile for {self.user_id}: {e}")
        self.profile = profile

        self._schedule_cloud("profile save", lambda remote: remote.save_profile(profile))
        return profile


class PatternStoreRegistry:
    """one loaded store per user, shared across requests"""

    def __init__(self, local: LocalKeyValueStore, remote: Optional[RemoteStore] = None):
        self.local = local
        self.remote = remote
        self._stores: dict[str, PersonalPatternStore] = {}

    def get(self, user_id: str) -> PersonalPatternStore:
        store = self._stores.get(user_id)
        if store is None:
            store = PersonalPatternStore(user_id, self.local, self.remote)
            store.load()
            self._stores[user_id] = store
        return store

    async def aget(self, user_id: str) -> PersonalPatternStore:
        """async lookup: the first load of a user reads local storage in a worker thread"""
        store = self._stores.get(user_id)
        if store is not None:
            return store
        store = PersonalPatternStore(user_id, self.local, self.remote)
        await asyncio.to_thread(store.load)
        # a concurrent first lookup may have finished first; keep its instance
        return self._stores.setdefault(user_id, store)

    async def wait_for_pending(self):
        for store in list(self._stores.values()):
            await store.wait_for_pending()
