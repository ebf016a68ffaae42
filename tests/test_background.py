import asyncio
import logging
import time

from dyslexia_api.engines.background import BackgroundRunner


def test_failing_and_slow_jobs_are_only_logged(caplog):
    done = []

    def broken():
        raise RuntimeError("disk full")

    def slow():
        time.sleep(0.3)

    def quick(value):
        done.append(value)

    async def scenario():
        runner = BackgroundRunner(max_concurrency=2, timeout=0.05)
        runner.spawn("broken", broken)
        runner.spawn("slow", slow)
        runner.spawn("quick", quick, "ok")
        assert runner.pending == 3
        await runner.drain(timeout=5)
        return runner

    with caplog.at_level(logging.WARNING, logger="dyslexia_api.engines.background"):
        runner = asyncio.run(scenario())

    assert runner.pending == 0
    assert done == ["ok"]
    assert "Background task broken failed" in caplog.text
    assert "Background task slow timed out" in caplog.text


def test_drain_without_jobs_returns():
    asyncio.run(BackgroundRunner().drain())
