"""
Offline response simulation.

Stands in for the assistant backend when no remote endpoint is configured:
- Voice uploads get one of a few canned recognitions, picked at random
- Text queries are categorized by keyword and answered with a canned paragraph
- Every answered query is appended to the local query history
- Each operation waits for a short, backend-like delay
"""

import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional, Tuple

from voicebridge.clients.local_store import HISTORY_LIMIT, LocalDataStore
from voicebridge.models.api_models import QueryRecord, TextQueryResult, VoiceQueryResult
from voicebridge.models.internal_models import CannedReply, Classification

logger = logging.getLogger(__name__)

# Seconds each offline operation takes before the latency scale is applied
SIMULATED_DELAYS: Dict[str, float] = {
    "login": 0.8,
    "register": 1.0,
    "get_profile": 0.3,
    "update_profile": 0.5,
    "voice_submit": 2.0,
    "text_query": 1.5,
    "list_lessons": 0.4,
    "list_history": 0.3,
}

DEFAULT_CATEGORY = "general"

VOICE_REPLIES: Tuple[CannedReply, ...] = (
    CannedReply(
        query="How can I stay healthy?",
        response="I understand you asked about health. Here are some basic health tips: wash your hands regularly, eat nutritious foods, and get adequate sleep.",
        category="health",
    ),
    CannedReply(
        query="Tell me about basic mathematics",
        response="For educational content, I recommend starting with basic concepts and building up your knowledge gradually.",
        category="education",
    ),
    CannedReply(
        query="How do I save money?",
        response="Regarding finance, always budget your money wisely and try to save a portion of your income regularly.",
        category="finance",
    ),
    CannedReply(
        query="Tell me a story",
        response="Entertainment is important for mental health. Consider traditional stories, music, and cultural activities.",
        category="entertainment",
    ),
)

CATEGORY_RESPONSES: Dict[str, str] = {
    "health": "For health queries: Regular exercise, balanced diet, adequate sleep, and proper hygiene are essential. Consult healthcare providers for specific medical concerns.",
    "education": "Educational tip: Break down complex topics into smaller parts, practice regularly, ask questions, and use multiple learning methods like reading, listening, and hands-on activities.",
    "finance": "Financial advice: Create a budget, track expenses, save regularly, avoid unnecessary debt, and learn about basic investment principles for long-term wealth building.",
    "entertainment": "For entertainment: Engage with local cultural activities, traditional music, storytelling, games, and community events that bring people together.",
}

# Checked in this order; the first category with a matching keyword wins
CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("health", ("health", "medical", "sick")),
    ("education", ("learn", "education", "school")),
    ("finance", ("money", "finance", "bank")),
    ("entertainment", ("fun", "entertainment", "story")),
)

GENERIC_RESPONSE_TEMPLATE = (
    'Thank you for your question about "{text}". In a connected environment, I would provide '
    'detailed, personalized responses. For now, I recommend exploring our lessons section for '
    'comprehensive information.'
)


def classify_text(text: str, category: Optional[str] = None) -> Classification:
    """
    Categorize a text query and pick its canned answer.

    A known ``category`` wins outright. Otherwise the lowercased text is checked
    against the keyword groups in priority order. Unmatched queries get a
    generic acknowledgement echoing the text, tagged with the supplied
    category or ``general``.
    """
    if category in CATEGORY_RESPONSES:
        return Classification(category=category, response=CATEGORY_RESPONSES[category])

    lowered = text.lower()
    for name, keywords in CATEGORY_KEYWORDS:
        for keyword in keywords:
            if keyword in lowered:
                return Classification(category=name, response=CATEGORY_RESPONSES[name], matched_keyword=keyword)

    return Classification(
        category=category or DEFAULT_CATEGORY,
        response=GENERIC_RESPONSE_TEMPLATE.format(text=text),
    )


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ResponseSimulator:
    """
    Produces backend-like replies for offline mode and records them in history.

    The random source, the sleep coroutine and the clock are injectable so
    tests can make the simulator deterministic and instant.
    """

    def __init__(
        self,
        store: LocalDataStore,
        rng: Optional[random.Random] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        latency_scale: float = 1.0,
        clock: Optional[Callable[[], str]] = None,
        history_limit: int = HISTORY_LIMIT
    ):
        """
        Initialize the simulator.

        Args:
            store: Local store holding the query history
            rng: Random source for voice replies (default: unseeded ``random.Random``)
            sleep: Coroutine used for artificial delays (default: ``asyncio.sleep``)
            latency_scale: Multiplier for every delay; 0 disables them
            clock: Returns the ISO-8601 timestamp for new history records
            history_limit: Maximum number of history entries kept
        """
        self.store = store
        self.rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep
        self.latency_scale = latency_scale
        self._clock = clock or _utc_timestamp
        self.history_limit = history_limit
        self._last_id = 0

    async def delay(self, operation: str) -> None:
        """Wait as long as the backend would for ``operation``."""
        seconds = SIMULATED_DELAYS.get(operation, 0.0) * self.latency_scale
        if seconds > 0:
            await self._sleep(seconds)

    def _next_id(self) -> str:
        # Millisecond clock, bumped so ids stay unique and increasing within the process
        candidate = int(time.time() * 1000)
        self._last_id = max(candidate, self._last_id + 1)
        return str(self._last_id)

    def record_query(self, query: str, response: str, language: str, category: str) -> QueryRecord:
        """Append one answered query to the history and return the stored record."""
        record = QueryRecord(
            id=self._next_id(),
            query=query,
            response=response,
            language=language,
            category=category,
            timestamp=self._clock(),
        )
        self.store.append_history(record.model_dump(exclude_none=True), limit=self.history_limit)
        logger.debug(f"Recorded offline query {record.id} in category {category}")
        return record

    async def simulate_voice(self, language: str, category: Optional[str] = None) -> VoiceQueryResult:
        """
        Pretend to recognize an uploaded recording.

        There is no speech understanding: one canned reply is chosen uniformly
        at random. The supplied category, if any, tags the history record.
        """
        await self.delay("voice_submit")
        reply = self.rng.choice(VOICE_REPLIES)

        self.record_query(reply.query, reply.response, language, category or reply.category)
        logger.info(f"Simulated voice reply in category {reply.category}")

        return VoiceQueryResult(query=reply.query, response=reply.response)

    async def simulate_text(self, text: str, language: str, category: Optional[str] = None) -> TextQueryResult:
        """Answer a typed query with the canned paragraph for its category."""
        await self.delay("text_query")
        classification = classify_text(text, category)

        self.record_query(text, classification.response, language, classification.category)
        logger.info(f"Simulated text reply in category {classification.category}")

        return TextQueryResult(query=text, response=classification.response)
