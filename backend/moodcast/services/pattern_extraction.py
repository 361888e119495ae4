# pattern extraction: mines recent journal entries into durable personal patterns
# the llm reply is untrusted: every candidate is validated on its own, clamped,
# stamped with the entry that supports it, and only then offered to the store.
#
# extraction pipeline:
#   1. take the newest entries and format them as dated blocks
#   2. ask gemini for occupation, significant dates, weekday patterns, triggers
#   3. strip markdown fences and parse json
#   4. validate each candidate, reject low-confidence or malformed ones
#   5. add survivors to the pattern store (confidence merge rule applies)
#   6. update the user's mood profile

import json
import logging
import re
from typing import Optional

from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import ValidationError

from moodcast.config import settings
from moodcast.models.extraction import (
    ExtractedSignificantDate,
    ExtractedTrigger,
    ExtractedWeekdayPattern,
    ExtractionResult,
    LLMPatternExtractionResponse,
)
from moodcast.models.journal import JournalEntry
from moodcast.models.pattern import (
    WEEKDAY_NAMES,
    MonthDay,
    OccupationType,
    PatternType,
    PersonalPattern,
    clamp_finite,
)
from moodcast.services.pattern_store import PatternStoreError, PersonalPatternStore

logger = logging.getLogger(__name__)

MAX_SNIPPET_CHARS = 200

MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


# extraction prompt: asks for strict json only

EXTRACTION_PROMPT = ChatPromptTemplate.from_messages([
    ("system", """You are an expert psychologist analyzing journal entries to identify personal mood patterns.

Extract patterns that can predict future mood:

1. Occupation type: is the writer an employee, business owner, student, freelancer, unemployed, or retired?
2. Significant dates: personal calendar dates (anniversaries, losses, birthdays) that affect mood every year.
3. Weekday patterns: days of the week that consistently lift or lower their mood.
4. Emotional triggers: recurring themes, keywords or situations that affect their mood.

Respond ONLY with valid JSON in this exact format:
{{
    "occupationType": "employee|businessOwner|student|freelancer|unemployed|retired|unknown",
    "occupationConfidence": 0.0 to 1.0,
    "significantDates": [
        {{"monthDay": "MM-DD", "description": "...", "isPositive": true, "moodImpact": -3.0 to 3.0, "confidence": 0.0 to 1.0}}
    ],
    "weekdayPatterns": [
        {{"dayName": "Monday", "description": "...", "moodImpact": -3.0 to 3.0, "confidence": 0.0 to 1.0}}
    ],
    "emotionalTriggers": [
        {{"keywords": ["word1", "word2"], "description": "...", "moodImpact": -3.0 to 3.0, "confidence": 0.0 to 1.0}}
    ],
    "summary": "one or two sentences describing this person's mood tendencies"
}}

Only include patterns you are confident about. Use an empty array when a category has nothing.
Be conservative with confidence: above 0.7 only for very clear patterns."""),
    ("human", """Analyze these journal entries and extract mood patterns:

{entries}"""),
])


def get_extraction_llm() -> ChatGoogleGenerativeAI:
    """gemini instance tuned for structured output"""
    return ChatGoogleGenerativeAI(
        model=settings.GEMINI_MODEL,
        google_api_key=settings.GEMINI_API_KEY,
        temperature=0.2,
        max_output_tokens=2048,
    )


class GeminiPatternClient:
    """text-understanding collaborator: formatted entries in, raw json text out"""

    def __init__(self, chain=None):
        self._chain = chain

    def get_chain(self):
        if self._chain is None:
            self._chain = EXTRACTION_PROMPT | get_extraction_llm() | StrOutputParser()
        return self._chain

    async def extract_patterns(self, entry_texts: list[str]) -> str:
        chain = self.get_chain()
        return await chain.ainvoke({"entries": "\n\n---\n\n".join(entry_texts)})


# parsing helpers

def format_entry(entry: JournalEntry) -> str:
    created = entry.created_at
    stamp = f"{created:%A}, {created:%b} {created.day} {created.year}"
    mood = entry.mood if entry.mood is not None else 5
    return f"[{stamp}] (Mood: {mood}/10)\n{entry.content}"


def parse_response(raw: str) -> Optional[LLMPatternExtractionResponse]:
    """strip fences and parse the envelope. returns None when unusable."""
    cleaned = _FENCE.sub("", raw or "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"Extraction reply is not valid json: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning("Extraction reply is not a json object")
        return None
    try:
        return LLMPatternExtractionResponse.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Extraction reply has an invalid envelope: {e}")
        return None


def weekday_from_name(name: str) -> Optional[int]:
    """1 = sunday. accepts full names and three-letter abbreviations."""
    cleaned = (name or "").strip().lower()
    for number, day in enumerate(WEEKDAY_NAMES, start=1):
        if cleaned == day.lower() or (len(cleaned) == 3 and day.lower().startswith(cleaned)):
            return number
    return None


def parse_occupation(value: Optional[str]) -> Optional[OccupationType]:
    if not value:
        return None
    cleaned = value.strip().lower().replace(" ", "").replace("_", "")
    for occupation in OccupationType:
        if occupation.value.lower() == cleaned:
            return occupation
    return None


def _snippet(content: str, terms: list[str]) -> str:
    sentences = [s.strip() for s in _SENTENCE_END.split(content.strip()) if s.strip()]
    if not sentences:
        return ""
    chosen = sentences[0]
    for sentence in sentences:
        lowered = sentence.lower()
        if any(term in lowered for term in terms):
            chosen = sentence
            break
    return chosen[:MAX_SNIPPET_CHARS]


def find_supporting_entry(entries: list[JournalEntry], terms: list[str]) -> tuple[JournalEntry, str]:
    """first (newest) entry mentioning any term, else the newest entry"""
    terms = [t.lower() for t in terms if t]
    for entry in entries:
        lowered = entry.content.lower()
        if any(term in lowered for term in terms):
            return entry, _snippet(entry.content, terms)
    return entries[0], _snippet(entries[0].content, terms)


class PatternExtractionService:
    def __init__(
        self,
        client: GeminiPatternClient,
        max_entries: Optional[int] = None,
        min_confidence: Optional[float] = None,
    ):
        self.client = client
        self.max_entries = max_entries or settings.EXTRACTION_MAX_ENTRIES
        self.min_confidence = settings.EXTRACTION_MIN_CONFIDENCE if min_confidence is None else min_confidence

    def _confident_enough(self, confidence: float) -> bool:
        return confidence >= self.min_confidence

    def build_candidates(
        self,
        response: LLMPatternExtractionResponse,
        user_id: str,
        entries: list[JournalEntry],
    ) -> tuple[list[PersonalPattern], int]:
        """validated candidates plus the number of rejected items"""
        candidates: list[PersonalPattern] = []
        rejected = 0

        for raw in response.significant_dates:
            try:
                item = ExtractedSignificantDate.model_validate(raw)
                month_day = MonthDay.parse(item.month_day)
            except (ValidationError, ValueError) as e:
                logger.info(f"Rejected significant date {raw!r}: {e}")
                rejected += 1
                continue
            if not self._confident_enough(item.confidence):
                rejected += 1
                continue

            impact = item.mood_impact
            if item.is_positive is not None:
                impact = abs(impact) if item.is_positive else -abs(impact)

            entry, snippet = find_supporting_entry(entries, [MONTH_NAMES[month_day.month - 1]])
            candidates.append(PersonalPattern(
                user_id=user_id,
                pattern_type=PatternType.SIGNIFICANT_DATE,
                name="Significant date",
                description=item.description,
                mood_impact=impact,
                confidence=item.confidence,
                month_day=month_day,
                extracted_from_entry_id=entry.id,
                extracted_snippet=snippet,
            ))

        for raw in response.weekday_patterns:
            try:
                item = ExtractedWeekdayPattern.model_validate(raw)
            except ValidationError as e:
                logger.info(f"Rejected weekday pattern {raw!r}: {e}")
                rejected += 1
                continue
            weekday = weekday_from_name(item.day_name)
            if weekday is None or not self._confident_enough(item.confidence):
                rejected += 1
                continue

            day = WEEKDAY_NAMES[weekday - 1]
            entry, snippet = find_supporting_entry(entries, [day])
            candidates.append(PersonalPattern(
                user_id=user_id,
                pattern_type=PatternType.WEEKDAY_PREFERENCE,
                name=f"{day} pattern",
                description=item.description,
                mood_impact=item.mood_impact,
                confidence=item.confidence,
                day_of_week=weekday,
                extracted_from_entry_id=entry.id,
                extracted_snippet=snippet,
            ))

        for raw in response.emotional_triggers:
            try:
                item = ExtractedTrigger.model_validate(raw)
            except ValidationError as e:
                logger.info(f"Rejected trigger {raw!r}: {e}")
                rejected += 1
                continue
            if not self._confident_enough(item.confidence):
                rejected += 1
                continue

            entry, snippet = find_supporting_entry(entries, item.keywords)
            candidates.append(PersonalPattern(
                user_id=user_id,
                pattern_type=PatternType.RECURRING_TRIGGER,
                name="Emotional trigger",
                description=item.description,
                mood_impact=item.mood_impact,
                confidence=item.confidence,
                trigger_keywords=item.keywords,
                extracted_from_entry_id=entry.id,
                extracted_snippet=snippet,
            ))

        return candidates, rejected

    async def extract_patterns(self, entries: list[JournalEntry], store: PersonalPatternStore) -> ExtractionResult:
        """run one extraction over the newest entries and feed the store"""
        batch = sorted(
            (e for e in entries if e.content and e.content.strip()),
            key=lambda e: e.created_at,
            reverse=True,
        )[: self.max_entries]
        if not batch:
            logger.info(f"No journal text to analyze for {store.user_id}")
            return ExtractionResult(entries_analyzed=0)

        logger.info(f"Extracting patterns from {len(batch)} entries for {store.user_id}")
        try:
            raw = await self.client.extract_patterns([format_entry(e) for e in batch])
        except Exception as e:
            logger.error(f"Pattern extraction call failed: {e}")
            return ExtractionResult(entries_analyzed=len(batch), succeeded=False)

        response = parse_response(raw)
        if response is None:
            return ExtractionResult(entries_analyzed=len(batch), succeeded=False)

        candidates, rejected = self.build_candidates(response, store.user_id, batch)

        occupation = parse_occupation(response.occupation_type)
        if occupation == OccupationType.UNKNOWN:
            occupation = None
        confidence = None
        if response.occupation_confidence is not None:
            confidence = clamp_finite(response.occupation_confidence, 0.0, 1.0)
        # occupation is gated like every other candidate; missing confidence is a rejection
        if occupation is not None and (confidence is None or not self._confident_enough(confidence)):
            logger.info(f"Rejected occupation {occupation.value} with confidence {confidence}")
            rejected += 1
            occupation = None

        if occupation is not None:
            candidates.append(PersonalPattern(
                user_id=store.user_id,
                pattern_type=PatternType.OCCUPATION_TYPE,
                name="Occupation",
                description=f"Based on {occupation.value} work schedule",
                mood_impact=0.0,
                confidence=confidence,
                occupation_type=occupation,
                extracted_from_entry_id=batch[0].id,
            ))
            # an explicit user choice is never overridden
            if store.occupation_type == OccupationType.UNKNOWN:
                try:
                    store.set_occupation_type(occupation)
                except PatternStoreError as e:
                    logger.error(f"Could not save detected occupation: {e}")

        stored = 0
        for candidate in candidates:
            try:
                if store.add_pattern(candidate):
                    stored += 1
            except PatternStoreError as e:
                logger.error(f"Could not store extracted pattern: {e}")

        store.record_extraction(len(batch), response.summary)
        logger.info(
            f"Extraction for {store.user_id}: {len(candidates)} accepted, {stored} stored, {rejected} rejected"
        )
        return ExtractionResult(
            entries_analyzed=len(batch),
            accepted=len(candidates),
            stored=stored,
            rejected=rejected,
            occupation_type=occupation.value if occupation else None,
        )
