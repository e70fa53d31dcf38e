from .generator import TaskGenerator
from .patterns import TASK_PATTERNS, TIME_EXPRESSIONS, TaskPattern

__all__ = ["TaskGenerator", "TASK_PATTERNS", "TIME_EXPRESSIONS", "TaskPattern"]
