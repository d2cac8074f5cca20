# model_selector/models/execution.py
"""Pluggable execution strategies for independent evaluation tasks.

An executor maps a function over a list of tasks and returns the results
in task order, whatever order they finish in. Reductions over the results
are done by the caller, keyed on task position.
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from joblib import Parallel, delayed

from ..utils.exceptions import ConfigurationError, validate_parameter
from ..utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class Executor(ABC):
    """Parallel map primitive."""

    @abstractmethod
    def map(self, fn: Callable[[T], R], tasks: Sequence[T]) -> List[R]:
        """Apply ``fn`` to every task, results aligned with ``tasks``.

        The first exception raised by a task propagates to the caller.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SequentialExecutor(Executor):
    """Runs tasks one after another in the calling thread."""

    def map(self, fn, tasks):
        return [fn(task) for task in tasks]


class ThreadExecutor(Executor):
    """Runs tasks on a thread pool.

    scikit-learn and XGBoost release the GIL in their fitting loops, so
    threads give real parallelism for model training.
    """

    def __init__(self, max_workers: Optional[int] = None) -> None:
        validate_parameter("max_workers", max_workers, min_value=1)
        self.max_workers = max_workers

    def map(self, fn, tasks):
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(fn, task) for task in tasks]
            return [future.result() for future in futures]

    def __repr__(self) -> str:
        return f"ThreadExecutor(max_workers={self.max_workers})"


class JoblibExecutor(Executor):
    """Runs tasks through ``joblib.Parallel``."""

    def __init__(self, n_jobs: int = -1, backend: Optional[str] = None) -> None:
        if n_jobs != -1:
            validate_parameter("n_jobs", n_jobs, min_value=1)
        self.n_jobs = n_jobs
        self.backend = backend

    def map(self, fn, tasks):
        logger.debug(f"Dispatching {len(tasks)} tasks to joblib (n_jobs={self.n_jobs})")
        return list(Parallel(n_jobs=self.n_jobs, backend=self.backend)(delayed(fn)(task) for task in tasks))

    def __repr__(self) -> str:
        return f"JoblibExecutor(n_jobs={self.n_jobs}, backend={self.backend!r})"


def resolve_executor(executor: Any) -> Executor:
    """Accept an Executor, ``None`` (sequential) or an int worker count (threads)."""
    if executor is None:
        return SequentialExecutor()
    if isinstance(executor, Executor):
        return executor
    if isinstance(executor, int) and not isinstance(executor, bool):
        return SequentialExecutor() if executor == 1 else ThreadExecutor(max_workers=executor)
    raise ConfigurationError(f"Cannot use {executor!r} as an executor", error_code="EXECUTOR_INVALID")
