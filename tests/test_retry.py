import asyncio

import pytest

from dyslexia_api.engines.retry import RetryPolicy, linear_backoff


def test_linear_backoff():
    backoff = linear_backoff()
    assert [backoff(a) for a in (1, 2, 3)] == [0.5, 1.0, 1.5]


def test_retries_until_success():
    calls = []
    waits = []

    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise ValueError("bad json")
        return "ok"

    def backoff(attempt):
        waits.append(attempt)
        return 0

    assert asyncio.run(RetryPolicy(backoff=backoff).run(flaky)) == "ok"
    assert len(calls) == 3
    assert waits == [1, 2]


def test_last_error_is_raised_after_budget():
    calls = []

    async def broken():
        calls.append(1)
        raise RuntimeError(f"failure {len(calls)}")

    with pytest.raises(RuntimeError, match="failure 3"):
        asyncio.run(RetryPolicy(backoff=lambda a: 0).run(broken))
    assert len(calls) == 3


def test_non_retryable_error_propagates_immediately():
    calls = []

    async def broken():
        calls.append(1)
        raise KeyError("fatal")

    policy = RetryPolicy(backoff=lambda a: 0, retry_on=lambda exc: not isinstance(exc, KeyError))
    with pytest.raises(KeyError):
        asyncio.run(policy.run(broken))
    assert len(calls) == 1


def test_cancellation_during_backoff_stops_retrying():
    calls = []

    async def broken():
        calls.append(1)
        raise RuntimeError("down")

    async def scenario():
        task = asyncio.create_task(RetryPolicy(backoff=lambda a: 10).run(broken))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert len(calls) == 1
