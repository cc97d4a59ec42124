"""
Error taxonomy for the prediction pipeline
"""


class PipelineError(Exception):
    """Base class for tick-level pipeline errors"""


class InsufficientWindowError(PipelineError, ValueError):
    """Reading window is empty, too short, mixed-device or out of order"""


class InferenceError(PipelineError, RuntimeError):
    """A task with no safe fallback failed; the tick must be aborted"""

    def __init__(self, task, cause: Exception):
        self.task = task
        self.cause = cause
        task_name = getattr(task, 'value', task)
        super().__init__(f"{task_name} inference failed: {cause}")


class DataSourceError(PipelineError, IOError):
    """Reading source could not be queried"""
