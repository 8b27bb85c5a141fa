"""Canonical models shared across all riddlenet modules.

Every other module imports its data shapes from here. The models fall into
three groups:

**Settings models** -- Pydantic models serialised as JSON in the user's config
directory: :class:`RequestConfig`, :class:`CacheConfig` and :class:`Settings`.

**Transport values** -- small immutable dataclasses passed between the layers
of the client: :class:`RequestDescriptor`, :class:`RetryState`,
:class:`CacheEntry`, :class:`ReadSource` and :class:`ReadResult`.

**Domain models** -- Pydantic models for the server's resources. Response
models (:class:`Riddle`, :class:`Player`, :class:`PlayerDetails`,
:class:`LeaderboardEntry`) are lenient so that odd server data never breaks
a read. Submission models (:class:`RiddleSubmission`, :class:`RiddleUpdate`,
:class:`PlayerRegistration`, :class:`ScoreSubmission`) are strict and are
validated by the services before any write reaches the network.
"""

from __future__ import annotations

import enum
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DEFAULT_BASE_URL = "http://localhost:3000"

DEFAULT_HEADERS: Mapping[str, str] = MappingProxyType(
    {"Content-Type": "application/json", "Accept": "application/json"}
)

RIDDLE_LEVELS = ("easy", "medium", "hard")

_USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9_]+")


# --- Settings ---


class RequestConfig(BaseModel):
    """HTTP timing and retry policy applied to every call.

    With the defaults no call can block longer than
    ``timeout * (max_retries + 1)`` plus the backoff delays; see
    :func:`riddlenet.client.invoker.worst_case_duration`.
    """

    timeout: float = Field(default=8.0, gt=0, description="Per-attempt timeout in seconds")
    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    base_delay: float = Field(default=1.0, ge=0, description="Backoff before the first retry, seconds")
    jitter_min: float = Field(default=0.85, gt=0, description="Lower bound of the jitter factor")
    jitter_max: float = Field(default=1.15, gt=0, description="Upper bound of the jitter factor")
    health_path: str = Field(default="/health", description="Liveness probe endpoint")
    health_timeout: float = Field(default=3.0, gt=0, description="Liveness probe timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class CacheConfig(BaseModel):
    """Local response cache settings.

    TTLs are in seconds; ``None`` means the entry only leaves the cache by
    explicit invalidation.
    """

    enabled: bool = Field(default=True, description="Persist responses with diskcache")
    directory: Optional[str] = Field(
        default=None, description="Cache directory (defaults to the XDG cache dir)"
    )
    ttl_seconds: Optional[float] = Field(
        default=3600, description="TTL for single riddles and player details"
    )
    collection_ttl_seconds: Optional[float] = Field(
        default=300, description="TTL for riddle listings"
    )
    leaderboard_ttl_seconds: Optional[float] = Field(
        default=30, description="TTL for leaderboard pages"
    )

    def ttl_for(self, resource: str, operation: str) -> Optional[float]:
        """Return the TTL for entries produced by *operation* on *resource*."""
        if resource == "players" and operation == "list":
            return self.leaderboard_ttl_seconds
        if operation == "list":
            return self.collection_ttl_seconds
        return self.ttl_seconds


class Settings(BaseModel):
    """Effective configuration, persisted at ``~/.config/riddlenet/config.json``.

    Loaded by :func:`~riddlenet.config.resolve_settings`, which layers
    environment variables and CLI flags on top of the file.
    """

    base_url: str = DEFAULT_BASE_URL
    request: RequestConfig = Field(default_factory=RequestConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @field_validator("base_url")
    @classmethod
    def _normalise_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("base_url must not be empty")
        return value

    def url(self, path: str) -> str:
        """Join *path* onto the base URL, adding the leading slash if missing."""
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    @property
    def health_url(self) -> str:
        return self.url(self.request.health_path)


# --- Transport values ---


@dataclass(frozen=True)
class RequestDescriptor:
    """One logical HTTP call, consumed once by the retrying invoker.

    ``headers`` and ``params`` are frozen into read-only mappings so the
    descriptor can be shared between attempts without being altered.
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    params: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        cleaned = {k: v for k, v in self.params.items() if v is not None}
        object.__setattr__(self, "params", MappingProxyType(cleaned))


@dataclass(frozen=True)
class RetryState:
    """Progress of a single invocation: the attempt about to run and the next delay.

    Never mutated -- :meth:`advance` returns the state for the following
    attempt.
    """

    attempt: int
    next_delay: float

    def advance(self) -> RetryState:
        return RetryState(attempt=self.attempt + 1, next_delay=self.next_delay * 2)


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload with the wall-clock time it was stored and its TTL."""

    payload: Any
    stored_at: float = field(default_factory=time.time)
    ttl: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        if self.ttl is None:
            return False
        return now - self.stored_at > self.ttl


class ReadSource(str, enum.Enum):
    """Where the payload of a :class:`ReadResult` came from."""

    NETWORK = "network"
    CACHED = "cached"  # backend known down, answered from cache without trying
    STALE = "stale"  # network attempt failed, answered from cache
    EMPTY = "empty"  # collection read with neither network nor cache


@dataclass(frozen=True)
class ReadResult:
    """Outcome of a read through the resilient resource client."""

    payload: Any
    source: ReadSource = ReadSource.NETWORK

    @property
    def degraded(self) -> bool:
        return self.source is not ReadSource.NETWORK

    @property
    def data(self) -> Any:
        """The ``data`` member of the JSON envelope, or the payload itself."""
        if isinstance(self.payload, dict) and "data" in self.payload:
            return self.payload["data"]
        return self.payload


EMPTY_COLLECTION: Mapping[str, Any] = MappingProxyType(
    {"success": False, "count": 0, "data": []}
)


# --- Domain models ---


def format_time(time_ms: Optional[float]) -> str:
    """Render a solve time in milliseconds as ``"42s"`` or ``"3m 5s"``."""
    if not time_ms:
        return "No time recorded"
    seconds = int((time_ms / 1000) % 60)
    minutes = int((time_ms / (1000 * 60)) % 60)
    if minutes == 0:
        return f"{seconds}s"
    return f"{minutes}m {seconds}s"


class Riddle(BaseModel):
    """A riddle as returned by the server."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    question: str = ""
    answer: str = ""
    level: str = "medium"
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )

    def is_correct_answer(self, answer: Optional[str]) -> bool:
        if not answer or not isinstance(answer, str):
            return False
        return self.answer.strip().lower() == answer.strip().lower()

    @property
    def formatted_level(self) -> str:
        if self.level.lower() in RIDDLE_LEVELS:
            return self.level.capitalize()
        return self.level


class RiddlePage(BaseModel):
    """A page of riddles plus where it came from."""

    count: int = 0
    riddles: list[Riddle] = Field(default_factory=list)
    source: ReadSource = ReadSource.NETWORK


class AnswerCheck(BaseModel):
    is_correct: bool
    correct_answer: str
    provided_answer: str
    riddle_id: Optional[str] = None


class DeleteResult(BaseModel):
    success: bool = True
    deleted_id: str


class Player(BaseModel):
    """A player as returned by the server."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
    username: str = ""
    best_time: float = 0
    created_at: Optional[datetime] = None

    @property
    def formatted_best_time(self) -> str:
        return format_time(self.best_time)


class PlayerStats(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_solved: int = 0
    avg_time: float = 0
    best_time: float = 0


class PlayerDetails(BaseModel):
    """Player lookup response: the player, aggregate stats and solve history."""

    player: Player
    stats: PlayerStats = Field(default_factory=PlayerStats)
    history: list[dict[str, Any]] = Field(default_factory=list)


class PlayerSummary(BaseModel):
    """Flattened statistics view of a player."""

    username: str
    best_time: float
    formatted_best_time: str
    created_at: Optional[datetime] = None
    total_solved: int = 0
    average_time: float = 0
    history_count: int = 0


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
    username: str
    best_time: float = 0
    riddles_solved: int = 0

    @property
    def formatted_time(self) -> str:
        return format_time(self.best_time)


class ScoreResult(BaseModel):
    success: bool
    message: Optional[str] = None
    new_best: bool = False


class RiddleSubmission(BaseModel):
    """Body of ``POST /riddles``; also the items of a bulk load."""

    question: str
    answer: str
    level: str = "medium"

    @field_validator("question", "answer")
    @classmethod
    def _required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("is required")
        return value.strip()

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in RIDDLE_LEVELS:
            raise ValueError("must be easy, medium, or hard")
        return value


class RiddleUpdate(BaseModel):
    """Body of ``PUT /riddles/{id}``; only the fields that are set are sent."""

    question: Optional[str] = None
    answer: Optional[str] = None
    level: Optional[str] = None

    @field_validator("question", "answer")
    @classmethod
    def _not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("must not be blank")
        return value.strip() if value is not None else None

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().lower()
        if value not in RIDDLE_LEVELS:
            raise ValueError("must be easy, medium, or hard")
        return value


class PlayerRegistration(BaseModel):
    """Body of ``POST /players``."""

    username: str

    @field_validator("username")
    @classmethod
    def _valid_username(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Username is required")
        if len(value) < 3:
            raise ValueError("Username must be at least 3 characters long")
        if len(value) > 20:
            raise ValueError("Username must be at most 20 characters long")
        if not _USERNAME_PATTERN.fullmatch(value):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return value


class ScoreSubmission(BaseModel):
    """Body of ``POST /players/submit-score``."""

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(min_length=1)
    riddle_id: str = Field(min_length=1, serialization_alias="riddleId")
    time_to_solve: int = Field(ge=0, serialization_alias="timeToSolve")
