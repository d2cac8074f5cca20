"""Tests for the execution strategies."""
import threading

import pytest

from model_selector.models.execution import (
    JoblibExecutor,
    SequentialExecutor,
    ThreadExecutor,
    resolve_executor,
)
from model_selector.utils.exceptions import ConfigurationError


def square(value):
    return value * value


class TestExecutors:
    """Test ordered parallel map."""

    @pytest.mark.unit
    @pytest.mark.parametrize("executor", [
        SequentialExecutor(),
        ThreadExecutor(max_workers=3),
        JoblibExecutor(n_jobs=2, backend="threading"),
    ])
    def test_results_follow_task_order(self, executor):
        assert executor.map(square, list(range(10))) == [value * value for value in range(10)]

    @pytest.mark.unit
    def test_thread_executor_uses_workers(self):
        seen = set()
        lock = threading.Lock()

        def record(value):
            with lock:
                seen.add(threading.get_ident())
            return value

        assert ThreadExecutor(max_workers=2).map(record, [1, 2, 3, 4]) == [1, 2, 3, 4]
        assert threading.get_ident() not in seen

    @pytest.mark.unit
    def test_task_exception_propagates(self):
        def fail_on_three(value):
            if value == 3:
                raise RuntimeError("task 3 failed")
            return value

        for executor in (SequentialExecutor(), ThreadExecutor(max_workers=2)):
            with pytest.raises(RuntimeError, match="task 3 failed"):
                executor.map(fail_on_three, [1, 2, 3, 4])

    @pytest.mark.unit
    def test_empty_task_list(self):
        assert ThreadExecutor().map(square, []) == []

    @pytest.mark.unit
    def test_invalid_worker_counts(self):
        with pytest.raises(ConfigurationError):
            ThreadExecutor(max_workers=0)
        with pytest.raises(ConfigurationError):
            JoblibExecutor(n_jobs=0)

    @pytest.mark.unit
    def test_repr(self):
        assert repr(SequentialExecutor()) == "SequentialExecutor()"
        assert repr(ThreadExecutor(max_workers=2)) == "ThreadExecutor(max_workers=2)"


class TestResolveExecutor:
    """Test executor coercion."""

    @pytest.mark.unit
    def test_none_is_sequential(self):
        assert isinstance(resolve_executor(None), SequentialExecutor)

    @pytest.mark.unit
    def test_worker_counts(self):
        assert isinstance(resolve_executor(1), SequentialExecutor)
        threaded = resolve_executor(4)
        assert isinstance(threaded, ThreadExecutor)
        assert threaded.max_workers == 4

    @pytest.mark.unit
    def test_executor_instances_pass_through(self):
        executor = JoblibExecutor(n_jobs=2)
        assert resolve_executor(executor) is executor

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["threads", True, 2.5])
    def test_invalid_values(self, value):
        with pytest.raises(ConfigurationError) as e:
            resolve_executor(value)
        assert e.value.error_code == "EXECUTOR_INVALID"


if __name__ == "__main__":
    pytest.main([__file__])
