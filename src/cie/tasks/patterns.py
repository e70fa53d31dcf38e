"""Rule tables for task generation."""

from dataclasses import dataclass
from datetime import timedelta

from ..models import Priority, TaskCategory


@dataclass(frozen=True)
class TaskPattern:
    keywords: tuple[str, ...]
    action: str
    priority: Priority
    due_offset: timedelta
    category: TaskCategory


# First matching row per sentence wins
TASK_PATTERNS = (
    TaskPattern(("call", "phone", "contact"), "Make a call",
                Priority.MEDIUM, timedelta(hours=2), TaskCategory.COMMUNICATION),
    TaskPattern(("email", "send", "reply", "respond"), "Send email",
                Priority.MEDIUM, timedelta(days=1), TaskCategory.COMMUNICATION),
    TaskPattern(("meeting", "schedule", "appointment"), "Schedule meeting",
                Priority.HIGH, timedelta(hours=4), TaskCategory.SCHEDULING),
    TaskPattern(("buy", "purchase", "order", "shopping"), "Make purchase",
                Priority.LOW, timedelta(days=3), TaskCategory.SHOPPING),
    TaskPattern(("review", "check", "analyze", "evaluate"), "Review content",
                Priority.MEDIUM, timedelta(days=2), TaskCategory.ANALYSIS),
    TaskPattern(("deadline", "due", "submit"), "Complete task",
                Priority.HIGH, timedelta(hours=12), TaskCategory.DEADLINE),
    TaskPattern(("book", "reserve", "appointment"), "Make reservation",
                Priority.MEDIUM, timedelta(days=1), TaskCategory.SCHEDULING),
    TaskPattern(("follow up", "follow-up", "followup"), "Follow up",
                Priority.MEDIUM, timedelta(days=7), TaskCategory.COMMUNICATION),
)

# (phrase, priority, due offset); only the first phrase found is used
TIME_EXPRESSIONS = (
    ("today", Priority.HIGH, timedelta(hours=2)),
    ("tomorrow", Priority.HIGH, timedelta(hours=8)),
    ("this week", Priority.MEDIUM, timedelta(days=2)),
    ("next week", Priority.MEDIUM, timedelta(days=7)),
    ("asap", Priority.HIGH, timedelta(hours=1)),
    ("urgent", Priority.HIGH, timedelta(hours=2)),
)

BUSINESS_FOLLOW_UPS = ("project", "client", "proposal", "deadline", "budget", "meeting")
PERSONAL_FOLLOW_UPS = ("appointment", "shopping", "health", "family", "home")
MAX_FOLLOW_UPS = 3

COMMUNICATION_ACTIONS = ("call", "email", "send", "reply")
AUTOMATION_KEYWORDS = ("send", "email", "schedule", "reminder", "book", "order")

CATEGORY_DURATIONS = {
    TaskCategory.COMMUNICATION: timedelta(minutes=15),
    TaskCategory.SCHEDULING: timedelta(minutes=10),
    TaskCategory.SHOPPING: timedelta(hours=1),
    TaskCategory.ANALYSIS: timedelta(hours=2),
    TaskCategory.DEADLINE: timedelta(hours=3),
    TaskCategory.BUSINESS: timedelta(hours=1),
    TaskCategory.PERSONAL: timedelta(minutes=30),
    TaskCategory.LEARNING: timedelta(hours=1),
    TaskCategory.ORGANIZATION: timedelta(minutes=20),
}

PRIORITY_BONUS = {Priority.HIGH: 0.3, Priority.MEDIUM: 0.2, Priority.LOW: 0.1}
