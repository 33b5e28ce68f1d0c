"""Tests for the group scheduler."""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from unittest.mock import patch

from stepflow.config import reset_settings
from stepflow.orchestration.group_scheduler import GroupScheduler
from stepflow.orchestration.keys import Key
from stepflow.orchestration.listeners import ListenerDispatcher
from stepflow.orchestration.results import OrchestrationStatus
from stepflow.orchestration.step import StepDefinition, StepGroup
from stepflow.orchestration.step_options import StepOptions
from stepflow.orchestration_exceptions import ConcurrentTaskFaultError


def _fail(context):
    raise RuntimeError("boom")


def _single(name, body=lambda ctx: None, key=None, options=None):
    return StepGroup.single(StepDefinition(name, body, key, options or StepOptions()))


def _parallel(*steps):
    return StepGroup.parallel(steps)


class FaultyPool:
    """Worker pool that faults the tasks of selected steps."""

    def __init__(self, delegate, fault_steps=(), cancel_steps=(), reject_steps=()):
        self.delegate = delegate
        self.fault_steps = set(fault_steps)
        self.cancel_steps = set(cancel_steps)
        self.reject_steps = set(reject_steps)

    def submit(self, fn, /, *args, **kwargs):
        step = args[0]
        if step.name in self.reject_steps:
            raise RuntimeError("pool rejected task")
        if step.name in self.fault_steps:
            future = Future()
            future.set_exception(MemoryError("worker died"))
            return future
        if step.name in self.cancel_steps:
            future = Future()
            future.cancel()
            return future
        return self.delegate.submit(fn, *args, **kwargs)


class TestGroupSchedulerSequential:
    """Test single-step groups."""

    def test_runs_groups_in_order_on_caller_thread(self, context):
        order = []
        threads = []

        def record(name):
            def body(ctx):
                order.append(name)
                threads.append(threading.current_thread())

            return body

        groups = [_single(name, record(name)) for name in ("a", "b", "c")]

        result = GroupScheduler().run(groups, context)

        assert result.status is OrchestrationStatus.SUCCESS
        assert order == ["a", "b", "c"]
        assert [step.step_name for step in result.steps] == ["a", "b", "c"]
        assert all(thread is threading.current_thread() for thread in threads)

    def test_sequential_pipeline_creates_no_pool(self, context):
        with patch("stepflow.orchestration.group_scheduler.ThreadPoolExecutor") as pool_class:
            GroupScheduler().run([_single("a"), _single("b")], context)

        pool_class.assert_not_called()

    def test_stop_halts_before_next_group(self, context):
        ran = []
        groups = [
            _single("a"),
            _single("b", _fail),
            _single("c", lambda ctx: ran.append("c")),
        ]

        result = GroupScheduler().run(groups, context)

        assert result.status is OrchestrationStatus.FAILED
        assert [step.step_name for step in result.steps] == ["a", "b"]
        assert ran == []

    def test_continue_reaches_end_as_partial(self, context):
        ran = []
        groups = [
            _single("a"),
            _single("b", _fail, options=StepOptions.continue_on_failure()),
            _single("c", lambda ctx: ran.append("c")),
        ]

        result = GroupScheduler().run(groups, context)

        assert result.status is OrchestrationStatus.PARTIAL
        assert [step.step_name for step in result.steps] == ["a", "b", "c"]
        assert ran == ["c"]

    def test_empty_pipeline_succeeds(self, context):
        result = GroupScheduler().run([], context)

        assert result.status is OrchestrationStatus.SUCCESS
        assert result.steps == ()


class TestGroupSchedulerParallel:
    """Test multi-step groups."""

    def test_members_run_concurrently(self, context):
        barrier = threading.Barrier(2, timeout=2)

        def rendezvous(ctx):
            barrier.wait()

        group = _parallel(StepDefinition("a", rendezvous), StepDefinition("b", rendezvous))

        result = GroupScheduler().run([group], context)

        assert result.status is OrchestrationStatus.SUCCESS
        assert all(step.success for step in result.steps)

    def test_metadata_in_declaration_order(self, context):
        def slow(ctx):
            time.sleep(0.2)

        group = _parallel(
            StepDefinition("slow", slow),
            StepDefinition("fast", lambda ctx: None),
        )

        result = GroupScheduler().run([group], context)

        assert [step.step_name for step in result.steps] == ["slow", "fast"]
        assert result.steps[1].end_time <= result.steps[0].end_time

    def test_group_joins_before_next_group(self, context):
        first = Key.of("first")
        second = Key.of("second")
        seen = {}

        def slow_first(ctx):
            time.sleep(0.1)
            return 1

        def reader(ctx):
            seen["first"] = ctx.get(first)
            seen["second"] = ctx.get(second)

        groups = [
            _parallel(
                StepDefinition("first", slow_first, first),
                StepDefinition("second", lambda ctx: 2, second),
            ),
            _single("reader", reader),
        ]

        result = GroupScheduler().run(groups, context)

        assert result.status is OrchestrationStatus.SUCCESS
        assert seen == {"first": 1, "second": 2}

    def test_owned_pool_is_shut_down(self, context):
        workers = []

        def record(ctx):
            workers.append(threading.current_thread())

        group = _parallel(StepDefinition("a", record), StepDefinition("b", record))

        GroupScheduler().run([group], context)

        assert workers
        assert all(worker is not threading.current_thread() for worker in workers)
        assert all(not worker.is_alive() for worker in workers)

    def test_owned_pool_shut_down_after_early_stop(self, context):
        workers = []

        def record(ctx):
            workers.append(threading.current_thread())

        groups = [
            _parallel(StepDefinition("a", record), StepDefinition("b", record)),
            _single("fail", _fail),
            _single("never"),
        ]

        result = GroupScheduler().run(groups, context)

        assert result.status is OrchestrationStatus.FAILED
        assert all(not worker.is_alive() for worker in workers)

    def test_owned_pool_uses_settings(self, context):
        group = _parallel(StepDefinition("a", lambda ctx: None), StepDefinition("b", lambda ctx: None))

        with patch(
            "stepflow.orchestration.group_scheduler.ThreadPoolExecutor", wraps=ThreadPoolExecutor
        ) as pool_class:
            GroupScheduler().run([group, group], context)

        pool_class.assert_called_once_with(max_workers=4, thread_name_prefix="stepflow-worker")

    def test_default_pool_fits_widest_later_group(self, context, monkeypatch):
        monkeypatch.setenv("STEPFLOW_ENV", "default")
        monkeypatch.delenv("STEPFLOW_MAX_WORKERS", raising=False)
        reset_settings()
        barrier = threading.Barrier(3, timeout=2)

        def rendezvous(ctx):
            barrier.wait()

        groups = [
            _parallel(StepDefinition("a", lambda ctx: None), StepDefinition("b", lambda ctx: None)),
            _parallel(
                StepDefinition("x", rendezvous),
                StepDefinition("y", rendezvous),
                StepDefinition("z", rendezvous),
            ),
        ]

        result = GroupScheduler().run(groups, context)

        assert result.status is OrchestrationStatus.SUCCESS
        assert [step.step_name for step in result.steps] == ["a", "b", "x", "y", "z"]

    def test_configured_workers_never_starve_a_group(self, context):
        barrier = threading.Barrier(5, timeout=2)

        def rendezvous(ctx):
            barrier.wait()

        group = _parallel(*(StepDefinition(f"s{i}", rendezvous) for i in range(5)))

        with patch(
            "stepflow.orchestration.group_scheduler.ThreadPoolExecutor", wraps=ThreadPoolExecutor
        ) as pool_class:
            result = GroupScheduler().run([group], context)

        assert result.status is OrchestrationStatus.SUCCESS
        pool_class.assert_called_once_with(max_workers=5, thread_name_prefix="stepflow-worker")

    def test_injected_executor_is_used_and_not_shut_down(self, context, executor):
        workers = []

        def record(ctx):
            workers.append(threading.current_thread().name)

        group = _parallel(StepDefinition("a", record), StepDefinition("b", record))

        with patch("stepflow.orchestration.group_scheduler.ThreadPoolExecutor") as pool_class:
            result = GroupScheduler(executor=executor).run([group], context)

        pool_class.assert_not_called()
        assert result.status is OrchestrationStatus.SUCCESS
        assert all(not name.startswith("stepflow-worker") for name in workers)
        assert executor.submit(lambda: "still open").result() == "still open"

    def test_member_stop_failure_halts(self, context):
        ran = []
        groups = [
            _parallel(StepDefinition("ok", lambda ctx: None), StepDefinition("bad", _fail)),
            _single("after", lambda ctx: ran.append("after")),
        ]

        result = GroupScheduler().run(groups, context)

        assert result.status is OrchestrationStatus.FAILED
        assert [step.step_name for step in result.steps] == ["ok", "bad"]
        assert ran == []

    def test_member_continue_failure_proceeds(self, context):
        ran = []
        groups = [
            _parallel(
                StepDefinition("ok", lambda ctx: None),
                StepDefinition("bad", _fail, options=StepOptions.continue_on_failure()),
            ),
            _single("after", lambda ctx: ran.append("after")),
        ]

        result = GroupScheduler().run(groups, context)

        assert result.status is OrchestrationStatus.PARTIAL
        assert len(result.steps) == 3
        assert ran == ["after"]

    def test_listeners_called_for_every_member(self, context, recording_listener):
        group = _parallel(StepDefinition("ok", lambda ctx: None), StepDefinition("fail", _fail))

        GroupScheduler(ListenerDispatcher([recording_listener])).run([group], context)

        assert sorted(recording_listener.events) == sorted(
            ["before:ok", "after:ok", "before:fail", "failure:fail"]
        )


class TestGroupSchedulerFaults:
    """Test worker-pool level faults during a parallel group."""

    def test_faulted_task_fails_and_stops_group(self, context, executor):
        ran = []
        groups = [
            _parallel(
                StepDefinition("ok", lambda ctx: None),
                StepDefinition("faulty", lambda ctx: None, options=StepOptions.continue_on_failure()),
            ),
            _single("after", lambda ctx: ran.append("after")),
        ]

        result = GroupScheduler(executor=FaultyPool(executor, fault_steps={"faulty"})).run(
            groups, context
        )

        assert result.status is OrchestrationStatus.FAILED
        assert [step.step_name for step in result.steps] == ["ok", "faulty"]
        assert result.steps[0].success
        faulted = result.steps[1]
        assert not faulted.success
        assert faulted.attempts == 0
        assert isinstance(faulted.exception, ConcurrentTaskFaultError)
        assert isinstance(faulted.exception.__cause__, MemoryError)
        assert ran == []

    def test_cancelled_task_fails_and_stops_group(self, context, executor):
        groups = [
            _parallel(StepDefinition("ok", lambda ctx: None), StepDefinition("cancelled", lambda ctx: None)),
        ]

        result = GroupScheduler(executor=FaultyPool(executor, cancel_steps={"cancelled"})).run(
            groups, context
        )

        assert result.status is OrchestrationStatus.FAILED
        assert isinstance(result.steps[1].exception, ConcurrentTaskFaultError)
        assert result.steps[1].exception.context["reason"] == "task was cancelled"

    def test_rejected_submission_fails_and_stops_group(self, context, executor):
        groups = [
            _parallel(StepDefinition("rejected", lambda ctx: None), StepDefinition("ok", lambda ctx: None)),
        ]

        result = GroupScheduler(executor=FaultyPool(executor, reject_steps={"rejected"})).run(
            groups, context
        )

        assert result.status is OrchestrationStatus.FAILED
        assert [step.step_name for step in result.steps] == ["rejected", "ok"]
        assert result.steps[1].success
        assert isinstance(result.steps[0].exception.__cause__, RuntimeError)
