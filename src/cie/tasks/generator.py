"""Candidate task generation from analyzed content."""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from ..config import DEFAULT_CONFIG
from ..errors import AnalysisError
from ..extraction.text import split_sentences
from ..models import (
    AnalysisResult,
    Category,
    ContentRecord,
    GeneratedTask,
    GenerationMethod,
    Priority,
    TaskCategory,
    TaskSchedule,
)
from .patterns import (
    AUTOMATION_KEYWORDS,
    BUSINESS_FOLLOW_UPS,
    CATEGORY_DURATIONS,
    COMMUNICATION_ACTIONS,
    MAX_FOLLOW_UPS,
    PERSONAL_FOLLOW_UPS,
    PRIORITY_BONUS,
    TASK_PATTERNS,
    TIME_EXPRESSIONS,
)

logger = logging.getLogger(__name__)


class TaskGenerator:
    """Runs the generation strategies and returns a deduplicated, ranked task list."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        extractor=None,
        classifier=None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.max_tasks = (config or DEFAULT_CONFIG).get("tasks", {}).get("max_tasks", 10)
        self.extractor = extractor
        self.classifier = classifier
        self.clock = clock

    def generate(
        self,
        record: ContentRecord,
        analysis: AnalysisResult,
        now: datetime | None = None,
    ) -> list[GeneratedTask]:
        """Generate tasks for a record from its analysis.

        Due dates are relative to `now` (generation time), not the record's creation time.
        """
        now = now or self.clock()
        tasks = (
            self._pattern_tasks(record, now)
            + self._action_tasks(record, analysis, now)
            + self._suggested_tasks(record, analysis, now)
            + self._context_tasks(record, analysis, now)
            + self._time_sensitive_tasks(record, now)
        )
        if analysis.priority is Priority.HIGH:
            for task in tasks:
                if task.priority is not Priority.HIGH:
                    task.priority = Priority.MEDIUM
        return self._finalize(record, tasks)

    def generate_for_record(self, record: ContentRecord, now: datetime | None = None) -> list[GeneratedTask]:
        """Analyze then generate; without analysis only the rule-only strategies run."""
        if self.extractor is None:
            raise ValueError("generate_for_record requires an extractor")
        now = now or self.clock()
        try:
            analysis = self.extractor.analyze(record.body, record.type, record.ocr_text)
        except AnalysisError as e:
            logger.warning(f"Analysis failed for {record.id}, using rule-only tasks: {e}")
            tasks = self._pattern_tasks(record, now) + self._time_sensitive_tasks(record, now)
            for task in tasks:
                task.tags = [record.type.value, record.source]
            return self._finalize(record, tasks)

        analysis.content_id = record.id
        if self.classifier is not None:
            analysis.category = self.classifier.classify(record, analysis)
        return self.generate(record, analysis, now=now)

    def _finalize(self, record: ContentRecord, tasks: list[GeneratedTask]) -> list[GeneratedTask]:
        unique: dict[tuple[str, TaskCategory], GeneratedTask] = {}
        for task in tasks:
            unique.setdefault(task.dedup_key, task)
        ranked = sorted(
            unique.values(),
            key=lambda t: t.confidence + PRIORITY_BONUS[t.priority],
            reverse=True,
        )[:self.max_tasks]
        _link_dependencies(ranked)
        logger.info(f"Generated {len(ranked)} tasks for {record.id}")
        return ranked

    # --- Strategies ---

    def _task(self, record: ContentRecord, **kwargs) -> GeneratedTask:
        kwargs.setdefault("duration", CATEGORY_DURATIONS[kwargs["category"]])
        return GeneratedTask(source_content_id=record.id, **kwargs)

    def _pattern_tasks(self, record: ContentRecord, now: datetime) -> list[GeneratedTask]:
        tasks = []
        for sentence in split_sentences(record.full_text):
            lower = sentence.lower()
            for pattern in TASK_PATTERNS:
                matched = [k for k in pattern.keywords if k in lower]
                if not matched:
                    continue
                tasks.append(self._task(
                    record,
                    title=f"{pattern.action}: {sentence[:40]}",
                    description=sentence,
                    priority=pattern.priority,
                    category=pattern.category,
                    due_date=now + pattern.due_offset,
                    confidence=len(matched) / len(pattern.keywords),
                    source_text=sentence,
                    method=GenerationMethod.PATTERN,
                    tags=matched + [pattern.category.value],
                ))
                break
        return tasks

    def _action_tasks(self, record: ContentRecord, analysis: AnalysisResult, now: datetime) -> list[GeneratedTask]:
        return [
            self._task(
                record,
                title=item.action.capitalize(),
                description=item.description,
                priority=Priority.MEDIUM,
                category=(TaskCategory.COMMUNICATION if item.action.lower() in COMMUNICATION_ACTIONS
                          else TaskCategory.PERSONAL),
                due_date=now + timedelta(days=1),
                confidence=item.confidence,
                source_text=item.description,
                method=GenerationMethod.ACTION_EXTRACTION,
                tags=[item.action],
                duration=timedelta(minutes=30),
            )
            for item in analysis.action_items
        ]

    def _suggested_tasks(self, record: ContentRecord, analysis: AnalysisResult, now: datetime) -> list[GeneratedTask]:
        return [
            self._task(
                record,
                title=suggestion.title,
                description=suggestion.description,
                priority=suggestion.priority,
                category=TaskCategory.PERSONAL,
                due_date=suggestion.due_date or now + timedelta(days=1),
                confidence=suggestion.confidence,
                source_text=suggestion.description,
                method=GenerationMethod.AI_SUGGESTED,
                tags=["suggested"],
                duration=timedelta(hours=1),
            )
            for suggestion in analysis.suggested_tasks
        ]

    def _context_tasks(self, record: ContentRecord, analysis: AnalysisResult, now: datetime) -> list[GeneratedTask]:
        text = record.full_text
        lower = text.lower()
        common = dict(source_text=text, method=GenerationMethod.CONTEXT_AWARE)

        if analysis.category is Category.BUSINESS:
            found = [p for p in BUSINESS_FOLLOW_UPS if p in lower][:MAX_FOLLOW_UPS]
            return [
                self._task(
                    record, title=f"Business: {p.capitalize()} follow-up",
                    description=f"Follow up on {p} mentioned in content",
                    priority=Priority.MEDIUM, category=TaskCategory.BUSINESS,
                    due_date=now + timedelta(days=2), confidence=0.7,
                    tags=["business", p], duration=timedelta(hours=1), **common,
                )
                for p in found
            ]
        if analysis.category is Category.PERSONAL:
            found = [p for p in PERSONAL_FOLLOW_UPS if p in lower][:MAX_FOLLOW_UPS]
            return [
                self._task(
                    record, title=f"Personal: {p.capitalize()} task",
                    description=f"Handle {p} item from captured content",
                    priority=Priority.LOW, category=TaskCategory.PERSONAL,
                    due_date=now + timedelta(days=3), confidence=0.6,
                    tags=["personal", p], duration=timedelta(minutes=30), **common,
                )
                for p in found
            ]
        if analysis.category is Category.LEARNING:
            return [self._task(
                record, title="Review learning material",
                description="Review and study the captured learning content",
                priority=Priority.MEDIUM, category=TaskCategory.LEARNING,
                due_date=now + timedelta(days=1), confidence=0.8,
                tags=["learning", "review"], duration=timedelta(minutes=45), **common,
            )]
        if analysis.category is Category.REFERENCE:
            return [self._task(
                record, title="Organize reference material",
                description="File and organize the reference content for future use",
                priority=Priority.LOW, category=TaskCategory.ORGANIZATION,
                due_date=now + timedelta(weeks=1), confidence=0.5,
                tags=["reference", "organize"], duration=timedelta(minutes=15), **common,
            )]
        # task and entertainment content get no follow-ups
        return []

    def _time_sensitive_tasks(self, record: ContentRecord, now: datetime) -> list[GeneratedTask]:
        text = record.full_text
        lower = text.lower()
        for phrase, priority, offset in TIME_EXPRESSIONS:
            if phrase not in lower:
                continue
            sentence = next((s for s in split_sentences(text) if phrase in s.lower()), text)
            return [self._task(
                record,
                title=f"Time-sensitive: {phrase}",
                description=f"Handle time-sensitive content: {text[:100]}",
                priority=priority,
                category=TaskCategory.DEADLINE,
                due_date=now + offset,
                confidence=0.8,
                source_text=sentence,
                method=GenerationMethod.TIME_SENSITIVE,
                tags=["urgent", phrase],
                duration=timedelta(minutes=45),
            )]
        return []

    # --- Scheduling ---

    def suggest_schedule(self, tasks: list[GeneratedTask], now: datetime | None = None) -> list[TaskSchedule]:
        """Scheduling hints: urgency, complexity, automation potential and a start time."""
        now = now or self.clock()
        schedules = []
        for task in tasks:
            urgency = 0.5 + {Priority.HIGH: 0.3, Priority.MEDIUM: 0.1}.get(task.priority, 0.0)
            start = None
            if task.due_date is not None:
                remaining = task.due_date - now
                if remaining < timedelta(hours=1):
                    urgency += 0.4
                elif remaining < timedelta(days=1):
                    urgency += 0.2
                start = task.due_date - task.duration * 1.5

            if len(task.description) < 50:
                complexity = "simple"
            elif len(task.description) < 150:
                complexity = "moderate"
            else:
                complexity = "complex"

            title = task.title.lower()
            schedules.append(TaskSchedule(
                task_id=task.id,
                title=task.title,
                urgency=min(urgency, 1.0),
                complexity=complexity,
                automation_potential="high" if any(k in title for k in AUTOMATION_KEYWORDS) else "low",
                suggested_start=start,
            ))
        return schedules


def _link_dependencies(tasks: list[GeneratedTask]) -> None:
    """A task depends on tasks from the same source sentence that are due earlier."""
    for task in tasks:
        task.dependencies = [
            other.id for other in tasks
            if other is not task
            and other.source_text == task.source_text
            and other.due_date is not None
            and task.due_date is not None
            and other.due_date < task.due_date
        ]
