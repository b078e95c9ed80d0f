import time
from typing import Any

from pydantic import BaseModel, Field, StrictInt, ValidationError


class InvalidRequest(ValueError):
    """Raised when a calculation payload is absent, malformed or out of domain."""


class CalculationRequest(BaseModel):
    n: StrictInt = Field(..., ge=0)


class CalculationResult(BaseModel):
    result: int
    process_time: float = Field(..., ge=0, description="Compute time in milliseconds")


def validate_request(payload: Any) -> int:
    if payload is None:
        raise InvalidRequest("missing request body")
    try:
        return CalculationRequest.model_validate(payload).n
    except ValidationError as e:
        raise InvalidRequest(str(e)) from e


# Deepest n evaluated with native recursion; leaves headroom under the
# default recursion limit for the server's own frames.
MAX_NATIVE_DEPTH = 400


# A deliberately slow Lucas implementation (recursive, no memoization)
def lucas(n: int) -> int:
    if n > MAX_NATIVE_DEPTH:
        return _lucas_call_tree(n)
    if n == 0:
        return 2
    if n == 1:
        return 1
    return lucas(n-1) + lucas(n-2)


def _lucas_call_tree(n: int) -> int:
    """
    Walk the same naive call tree as lucas() on an explicit stack.

    Every node above MAX_NATIVE_DEPTH is expanded into its two children, so
    the number of visits stays exponential in n. Subtrees at or below that
    depth go back to plain recursion.
    """
    total = 0
    stack = [n]
    while stack:
        k = stack.pop()
        if k <= MAX_NATIVE_DEPTH:
            total += lucas(k)
        else:
            stack.append(k-1)
            stack.append(k-2)
    return total


def timed_lucas(n: int) -> tuple[int, float]:
    start = time.perf_counter()
    value = lucas(n)
    elapsed = (time.perf_counter() - start) * 1000
    return value, elapsed


# Return value type: CalculationResult
def calculate(n: int) -> CalculationResult:
    value, elapsed = timed_lucas(n)
    return CalculationResult(result=value, process_time=elapsed)
