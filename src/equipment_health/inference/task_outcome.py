"""
Task Outcome Module
Explicit per-task results: a value, a documented fallback value, or a failure
that has to abort the tick
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from equipment_health.errors import InferenceError
from equipment_health.preprocessing.feature_schema import TaskKind


class OutcomeStatus(str, Enum):
    SUCCESS = 'success'
    FALLBACK = 'fallback'
    FAILED = 'failed'


class FailurePolicy(str, Enum):
    """What a task does when its model call fails"""
    PROPAGATE = 'propagate'
    FALLBACK = 'fallback'


@dataclass(frozen=True)
class TaskOutcome:
    task: TaskKind
    status: OutcomeStatus
    value: Any = None
    error: Optional[BaseException] = None
    detail: str = ''

    @classmethod
    def success(cls, task: TaskKind, value: Any) -> 'TaskOutcome':
        return cls(task, OutcomeStatus.SUCCESS, value)

    @classmethod
    def fallback(cls, task: TaskKind, value: Any,
                 error: Optional[BaseException] = None, detail: str = '') -> 'TaskOutcome':
        return cls(task, OutcomeStatus.FALLBACK, value, error, detail or (str(error) if error else ''))

    @classmethod
    def failed(cls, task: TaskKind, error: BaseException) -> 'TaskOutcome':
        return cls(task, OutcomeStatus.FAILED, None, error, str(error))

    @property
    def is_success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def is_fallback(self) -> bool:
        return self.status is OutcomeStatus.FALLBACK

    @property
    def is_failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED

    def unwrap(self) -> Any:
        """Value of a successful or fallback outcome; raises InferenceError on failure"""
        if self.is_failed:
            raise InferenceError(self.task, self.error)
        return self.value
