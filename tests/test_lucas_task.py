from statistics import mean

import pytest

from lucas_service.lucas_task import (
    CalculationResult,
    InvalidRequest,
    calculate,
    lucas,
    timed_lucas,
    validate_request,
)


@pytest.mark.parametrize("n,expected", [
    (0, 2),
    (1, 1),
    (2, 3),
    (3, 4),
    (4, 7),
    (10, 123),
    (20, 15127),
])
def test_lucas_correctness(n, expected):
    """Ensure the Lucas logic is mathematically correct."""
    assert lucas(n) == expected


@pytest.mark.parametrize("n", range(2, 22))
def test_lucas_recurrence(n):
    assert lucas(n) == lucas(n - 1) + lucas(n - 2)


def test_lucas_is_deterministic():
    assert len({lucas(18) for _ in range(5)}) == 1


def test_lucas_stays_recursive(monkeypatch):
    """No memoization: the call count follows the naive call tree."""
    import lucas_service.lucas_task as task

    calls = 0
    original = task.lucas

    def counting(n):
        nonlocal calls
        calls += 1
        return original(n)

    monkeypatch.setattr(task, "lucas", counting)
    assert task.lucas(10) == 123
    # L(n) makes 2*F(n+1) - 1 calls; F(11) = 89
    assert calls == 2 * 89 - 1


@pytest.mark.parametrize("payload,expected", [
    ({"n": 0}, 0),
    ({"n": 10}, 10),
    ({"n": 35}, 35),
])
def test_validate_request_accepts_non_negative(payload, expected):
    assert validate_request(payload) == expected


@pytest.mark.parametrize("payload", [
    None,
    {},
    {"m": 3},
    {"n": -1},
    {"n": -5},
    {"n": None},
    {"n": "10"},
    {"n": 2.5},
    {"n": True},
    [10],
    "n=10",
])
def test_validate_request_rejects(payload):
    with pytest.raises(InvalidRequest):
        validate_request(payload)


def test_invalid_request_is_value_error():
    assert issubclass(InvalidRequest, ValueError)


def test_timed_lucas_reports_elapsed():
    value, elapsed = timed_lucas(15)
    assert value == 1364
    assert isinstance(elapsed, float)
    assert elapsed >= 0


def test_calculate_packages_result():
    res = calculate(10)
    assert isinstance(res, CalculationResult)
    assert res.result == 123
    assert res.process_time >= 0
    assert set(res.model_dump()) == {"result", "process_time"}


def test_result_holds_values_beyond_64_bits():
    big = 2 ** 70 + 1
    res = CalculationResult(result=big, process_time=0.5)
    assert res.result == big


def test_process_time_grows_with_n():
    """Mean compute time trends upward with n; exact values are machine-dependent."""
    trials = 5
    small = mean(timed_lucas(20)[1] for _ in range(trials))
    large = mean(timed_lucas(25)[1] for _ in range(trials))
    assert small < large


def test_lucas_call_tree_matches_recursion(monkeypatch):
    import lucas_service.lucas_task as task

    monkeypatch.setattr(task, "MAX_NATIVE_DEPTH", 5)
    assert task.lucas(25) == 167761
    assert [task.lucas(n) for n in range(6, 12)] == [18, 29, 47, 76, 123, 199]


def test_deep_n_reaches_leaves_without_native_recursion(monkeypatch):
    """n far past the recursion limit descends on the explicit stack, not the C stack."""
    import traceback

    import lucas_service.lucas_task as task

    class LeafReached(Exception):
        pass

    original = task.lucas

    def leaf(k):
        raise LeafReached(k, len(traceback.extract_stack()))

    monkeypatch.setattr(task, "lucas", leaf)
    baseline = len(traceback.extract_stack())
    with pytest.raises(LeafReached) as exc_info:
        original(5000)

    k, frames = exc_info.value.args
    assert k <= task.MAX_NATIVE_DEPTH
    assert frames - baseline < 10


def test_native_depth_fits_recursion_limit():
    import sys

    import lucas_service.lucas_task as task

    assert task.MAX_NATIVE_DEPTH + 200 < sys.getrecursionlimit()
