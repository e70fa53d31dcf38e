"""Data models used throughout the engine."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from .errors import SearchValidationError


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    WEB = "web"
    PDF = "pdf"
    MIXED = "mixed"


class Category(str, Enum):
    BUSINESS = "business"
    PERSONAL = "personal"
    LEARNING = "learning"
    REFERENCE = "reference"
    TASK = "task"
    ENTERTAINMENT = "entertainment"


class EntityType(str, Enum):
    PERSON = "person"
    LOCATION = "location"
    ORGANIZATION = "organization"
    OTHER = "other"
    EMAIL = "email"
    URL = "url"
    PHONE = "phone"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}


class TagType(str, Enum):
    CATEGORY = "category"
    KEYWORD = "keyword"
    ENTITY = "entity"
    SOURCE = "source"
    CONTENT_TYPE = "content_type"
    TEMPORAL = "temporal"
    HIERARCHY = "hierarchy"
    PRIORITY = "priority"
    SENTIMENT = "sentiment"
    CUSTOM = "custom"


class TagSource(str, Enum):
    DERIVED = "derived"
    HEURISTIC = "heuristic"
    SYSTEM = "system"
    USER = "user"


class ConnectionType(str, Enum):
    SIMILAR_TOPIC = "similar_topic"
    RELATED_CONTENT = "related_content"
    TEMPORALLY_RELATED = "temporally_related"
    WEAKLY_RELATED = "weakly_related"


class ClusterType(str, Enum):
    SEMANTIC = "semantic"
    TOPIC = "topic"
    ENTITY = "entity"
    TEMPORAL = "temporal"
    CONTENT_TYPE = "content_type"
    SOURCE = "source"


class SearchStrategy(str, Enum):
    """Retrieval pass that produced a result. Declaration order is tie-break order."""
    TEXT = "text"
    SEMANTIC = "semantic"
    TAG = "tag"
    CONTEXTUAL = "contextual"

    @property
    def priority(self) -> int:
        return list(SearchStrategy).index(self)


class QueryIntent(str, Enum):
    QUESTION = "question"
    ACTION = "action"
    SEARCH = "search"


class SuggestionType(str, Enum):
    RECENT = "recent"
    TAG = "tag"
    CONTENT = "content"
    KEYWORD = "keyword"
    COMPLETION = "completion"


class TaskCategory(str, Enum):
    COMMUNICATION = "communication"
    SCHEDULING = "scheduling"
    SHOPPING = "shopping"
    ANALYSIS = "analysis"
    DEADLINE = "deadline"
    BUSINESS = "business"
    PERSONAL = "personal"
    LEARNING = "learning"
    ORGANIZATION = "organization"


class GenerationMethod(str, Enum):
    PATTERN = "pattern"
    ACTION_EXTRACTION = "action_extraction"
    AI_SUGGESTED = "ai_suggested"
    CONTEXT_AWARE = "context_aware"
    TIME_SENSITIVE = "time_sensitive"


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


@dataclass(frozen=True)
class ContentRecord:
    """A captured piece of content, owned by the capture/storage layer."""
    id: str
    type: ContentType
    title: str = ""
    body: str = ""
    ocr_text: str | None = None
    source: str = "unknown"
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if not isinstance(self.type, ContentType):
            object.__setattr__(self, "type", ContentType(self.type))
        object.__setattr__(self, "created_at", to_local_naive(self.created_at))

    @property
    def full_text(self) -> str:
        """Body followed by OCR text, the input the extractor analyzes."""
        parts = [p for p in (self.body, self.ocr_text) if p]
        return "\n".join(parts)


@dataclass
class NamedEntity:
    text: str
    type: EntityType
    confidence: float
    offset: int


@dataclass
class Sentiment:
    positive: float = 0.0
    negative: float = 0.0
    neutral: float = 1.0


@dataclass
class ActionItem:
    action: str
    description: str
    confidence: float = 0.6


@dataclass
class SuggestedTask:
    """A task candidate spotted by the extractor's sentence scan."""
    title: str
    description: str
    priority: Priority
    due_date: datetime | None = None
    confidence: float = 0.7


@dataclass
class AnalysisResult:
    """Derived understanding of one content record."""
    language: str
    keywords: list[str] = field(default_factory=list)
    entities: list[NamedEntity] = field(default_factory=list)
    sentiment: Sentiment = field(default_factory=Sentiment)
    confidence: float = 0.5
    summary: str = ""
    action_items: list[ActionItem] = field(default_factory=list)
    suggested_tasks: list[SuggestedTask] = field(default_factory=list)
    priority: Priority = Priority.LOW
    category: Category | None = None
    content_id: str | None = None
    analyzed_at: datetime = field(default_factory=datetime.now)


@dataclass(eq=False)
class SemanticTag:
    """A typed tag. Two tags with the same name and type are the same tag."""
    name: str
    type: TagType
    relevance: float
    confidence: float
    source: TagSource
    metadata: dict[str, Any] = field(default_factory=dict)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticTag):
            return NotImplemented
        return (self.name, self.type) == (other.name, other.type)

    def __hash__(self) -> int:
        return hash((self.name, self.type))


@dataclass
class TagSuggestion:
    tag: str
    confidence: float
    category: str  # "hierarchy", "keyword" or "content_type"
    related_tags: list[str] = field(default_factory=list)


@dataclass
class TagUsage:
    tag: str
    count: int
    last_used: datetime


@dataclass
class TagStatistics:
    total_tags: int
    most_used: list[TagUsage]
    recent: list[str]
    by_type: dict[str, int]


@dataclass
class GraphNode:
    """A content record as seen by the knowledge graph."""
    content_id: str
    title: str
    content_type: ContentType
    source: str
    created_at: datetime
    body: str = ""
    weight: float = 0.5
    keywords: list[str] = field(default_factory=list)
    entities: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SemanticConnection:
    from_id: str
    to_id: str
    strength: float
    connection_type: ConnectionType
    evidence: str = ""

    def other(self, node_id: str) -> str:
        """Return the endpoint opposite to node_id."""
        return self.to_id if node_id == self.from_id else self.from_id


@dataclass
class GraphCluster:
    """A group of graph nodes."""
    cluster_id: int
    node_ids: list[str]
    cluster_type: ClusterType = ClusterType.SEMANTIC
    strength: float = 0.0
    label: str = ""


@dataclass
class GraphStructure:
    nodes: list[GraphNode]
    connections: list[SemanticConnection]
    clusters: list[GraphCluster] = field(default_factory=list)

    @property
    def average_cluster_size(self) -> float:
        if not self.clusters:
            return 0.0
        return sum(len(c.node_ids) for c in self.clusters) / len(self.clusters)


@dataclass
class ContentRelationship:
    related_id: str
    relationship_type: str  # "graph_connected" or "semantically_similar"
    strength: float
    hops: int = 1
    evidence: str = ""


@dataclass
class InsightCluster:
    title: str
    description: str
    items: list[str]
    confidence: float
    cluster_type: ClusterType
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class SearchIndexEntry:
    """Cached searchable view of one content record."""
    content_id: str
    title: str
    body: str
    ocr_text: str
    content_type: ContentType
    keywords: set[str] = field(default_factory=set)
    entities: set[str] = field(default_factory=set)
    tags: set[str] = field(default_factory=set)
    created_at: datetime = field(default_factory=datetime.now)
    last_indexed: datetime = field(default_factory=datetime.now)


@dataclass
class SearchHighlight:
    offset: int
    length: int


@dataclass
class RankedResult:
    content_id: str
    title: str
    preview: str
    content_type: ContentType
    relevance: float
    strategy: SearchStrategy
    created_at: datetime
    highlights: list[SearchHighlight] = field(default_factory=list)
    explanations: list[str] = field(default_factory=list)


@dataclass(eq=False)
class SearchSuggestion:
    text: str
    type: SuggestionType
    confidence: float

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SearchSuggestion):
            return NotImplemented
        return (self.text, self.type) == (other.text, other.type)

    def __hash__(self) -> int:
        return hash((self.text, self.type))


@dataclass
class GeneratedTask:
    """A candidate task derived from content. Not persisted by the engine."""
    title: str
    description: str
    priority: Priority
    category: TaskCategory
    due_date: datetime | None
    confidence: float
    source_content_id: str
    source_text: str
    method: GenerationMethod
    tags: list[str] = field(default_factory=list)
    duration: timedelta = field(default_factory=lambda: timedelta(minutes=30))
    dependencies: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def dedup_key(self) -> tuple[str, TaskCategory]:
        return (self.title.lower(), self.category)


@dataclass
class TaskSchedule:
    """Scheduling hints for a generated task."""
    task_id: str
    title: str
    urgency: float
    complexity: str  # "simple", "moderate" or "complex"
    automation_potential: str  # "high" or "low"
    suggested_start: datetime | None


@dataclass
class SearchFilters:
    """Restrictions applied to search candidates. Validated at construction."""
    content_types: set[ContentType] | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    tags: list[str] = field(default_factory=list)
    min_relevance: float = 0.0

    def __post_init__(self):
        if self.content_types is not None:
            try:
                self.content_types = {ContentType(t) for t in self.content_types}
            except (TypeError, ValueError) as e:
                raise SearchValidationError(f"Invalid content type filter: {e}") from e
        for name in ("date_from", "date_to"):
            value = getattr(self, name)
            if value is not None:
                if not isinstance(value, datetime):
                    raise SearchValidationError(f"{name} must be a datetime, got {type(value).__name__}")
                setattr(self, name, to_local_naive(value))
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise SearchValidationError("date_from is after date_to")
        if isinstance(self.tags, str) or not isinstance(self.tags, (list, tuple, set, frozenset)):
            raise SearchValidationError(f"tags must be a list of strings, got {type(self.tags).__name__}")
        if not all(isinstance(t, str) for t in self.tags):
            raise SearchValidationError("tag filters must be strings")
        self.tags = [t.lower() for t in self.tags]
        if isinstance(self.min_relevance, bool) or not isinstance(self.min_relevance, (int, float)):
            raise SearchValidationError("min_relevance must be a number")
        if not 0.0 <= self.min_relevance <= 1.0:
            raise SearchValidationError("min_relevance must be between 0 and 1")
