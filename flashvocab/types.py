"""
Data types for the vocabulary store.

Records are kept on disk as JSON objects with camelCase keys. The dataclasses
here are the Python view of those objects; ``from_dict`` tolerates missing
keys and the older key names written by earlier versions of the app.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional


DEFAULT_WORD_TYPE = "unknown"
DEFAULT_CATEGORY = "general"
DEFAULT_CATEGORY_COLOR = "#3b82f6"
DEFAULT_SESSION_TYPE = "flashcard"

MIN_MASTERY = 0
MAX_MASTERY = 5
# Words at or above this level count as mastered
MASTERED_LEVEL = 4


def utc_now() -> str:
    """Current UTC timestamp, ISO 8601 with milliseconds and a Z suffix."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def clamp_mastery(level: Any) -> int:
    """Coerce a mastery level into the 0-5 range."""
    try:
        value = int(level)
    except (TypeError, ValueError):
        return MIN_MASTERY
    return max(MIN_MASTERY, min(MAX_MASTERY, value))


def as_int(value: Any, default: int = 0) -> int:
    """Coerce a stored number to int, or ``default`` if it is not one."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# Python attribute name -> on-disk key, for every field whose names differ.
# Used to accept either spelling in partial updates.
VOCABULARY_KEYS = {
    "mastery_level": "masteryLevel",
    "created_at": "createdAt",
    "last_reviewed_at": "lastReviewedAt",
    "review_count": "reviewCount",
    "last_modified": "lastModified",
}

CATEGORY_KEYS = {
    "created_at": "createdAt",
    "last_modified": "lastModified",
}


def to_storage_keys(updates: dict[str, Any], mapping: dict[str, str]) -> dict[str, Any]:
    """Rename snake_case keys in a partial update to their stored names."""
    return {mapping.get(k, k): v for k, v in updates.items()}


@dataclass
class VocabularyEntry:
    """A single flashcard: an English word and its Vietnamese meaning."""
    id: int
    english: str
    vietnamese: str
    type: str = DEFAULT_WORD_TYPE
    phonetic: str = ""
    example: str = ""
    category: str = DEFAULT_CATEGORY
    mastery_level: int = 0
    created_at: str = ""
    last_reviewed_at: Optional[str] = None
    review_count: int = 0
    last_modified: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VocabularyEntry":
        return cls(
            id=as_int(data.get("id")),
            english=data.get("english") or "",
            vietnamese=data.get("vietnamese") or "",
            type=data.get("type") or DEFAULT_WORD_TYPE,
            phonetic=data.get("phonetic") or "",
            example=data.get("example") or "",
            category=data.get("category") or DEFAULT_CATEGORY,
            mastery_level=clamp_mastery(data.get("masteryLevel", 0)),
            created_at=data.get("createdAt") or data.get("created") or "",
            last_reviewed_at=data.get("lastReviewedAt") or data.get("lastReviewed"),
            review_count=max(0, as_int(data.get("reviewCount"))),
            last_modified=data.get("lastModified"),
        )

    def to_dict(self) -> dict[str, Any]:
        d = {
            "id": self.id,
            "english": self.english,
            "vietnamese": self.vietnamese,
            "type": self.type,
            "phonetic": self.phonetic,
            "example": self.example,
            "category": self.category,
            "masteryLevel": self.mastery_level,
            "createdAt": self.created_at,
            "lastReviewedAt": self.last_reviewed_at,
            "reviewCount": self.review_count,
        }
        if self.last_modified:
            d["lastModified"] = self.last_modified
        return d


@dataclass
class Category:
    """A named group of words. Words refer to categories by name only."""
    id: int
    name: str
    description: str = ""
    color: str = DEFAULT_CATEGORY_COLOR
    created_at: str = ""
    last_modified: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Category":
        return cls(
            id=as_int(data.get("id")),
            name=data.get("name") or "",
            description=data.get("description") or "",
            color=data.get("color") or DEFAULT_CATEGORY_COLOR,
            created_at=data.get("createdAt") or data.get("created") or "",
            last_modified=data.get("lastModified"),
        )

    def to_dict(self) -> dict[str, Any]:
        d = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "createdAt": self.created_at,
        }
        if self.last_modified:
            d["lastModified"] = self.last_modified
        return d


@dataclass
class LearningSession:
    """One recorded answer against a word. Immutable once written."""
    id: int
    word_id: int
    correct: bool
    response_time_ms: float = 0.0
    session_type: str = DEFAULT_SESSION_TYPE
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LearningSession":
        response_time = data.get("responseTimeMs", data.get("responseTime", 0))
        return cls(
            id=as_int(data.get("id")),
            word_id=data.get("wordId"),
            correct=bool(data.get("correct")),
            response_time_ms=as_float(response_time),
            session_type=data.get("sessionType") or DEFAULT_SESSION_TYPE,
            timestamp=data.get("timestamp") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "wordId": self.word_id,
            "correct": self.correct,
            "responseTimeMs": self.response_time_ms,
            "sessionType": self.session_type,
            "timestamp": self.timestamp,
        }


@dataclass
class WordStatistics:
    """Aggregates over every session recorded for one word."""
    total_sessions: int = 0
    correct_sessions: int = 0
    accuracy: float = 0.0
    average_response_time: float = 0.0
    last_session: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSessions": self.total_sessions,
            "correctSessions": self.correct_sessions,
            "accuracy": self.accuracy,
            "averageResponseTime": self.average_response_time,
            "lastSession": self.last_session,
        }


@dataclass
class OverallProgress:
    """Store-wide learning progress."""
    total_words: int = 0
    mastered_words: int = 0
    total_sessions: int = 0
    correct_sessions: int = 0
    overall_accuracy: float = 0.0
    mastery_percentage: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalWords": self.total_words,
            "masteredWords": self.mastered_words,
            "totalSessions": self.total_sessions,
            "correctSessions": self.correct_sessions,
            "overallAccuracy": self.overall_accuracy,
            "masteryPercentage": self.mastery_percentage,
        }


@dataclass
class StoreStats:
    """Row counts and metadata for the whole store document."""
    vocabulary_count: int = 0
    categories_count: int = 0
    sessions_count: int = 0
    settings_count: int = 0
    database_size: int = 0
    created: str = ""
    last_modified: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "vocabularyCount": self.vocabulary_count,
            "categoriesCount": self.categories_count,
            "sessionsCount": self.sessions_count,
            "settingsCount": self.settings_count,
            "databaseSize": self.database_size,
            "created": self.created,
            "lastModified": self.last_modified,
        }


@dataclass
class ImportResult:
    """Outcome of a bulk import: how many candidates were added."""
    imported: int = 0
    total: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"imported": self.imported, "total": self.total}
        if self.error:
            d["error"] = self.error
        return d


@dataclass
class ListOptions:
    """
    Filtering and paging for vocabulary listings.

    Applied in order: category filter, then offset, then limit.
    ``limit=None`` means no limit.
    """
    category: Optional[str] = None
    offset: int = 0
    limit: Optional[int] = None
