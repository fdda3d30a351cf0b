"""
Tests for the stream reconnect supervisor.
"""

import pytest

from libs.alpaca.exceptions import StreamClosedError, StreamConnectionError
from libs.alpaca.supervisor import supervise


class ScriptedFactory:
    """
    Stream factory replaying one script per run.

    Each script is a list of items; an exception instance ends the run by
    raising it.
    """

    def __init__(self, *runs):
        self.runs = list(runs)
        self.calls = 0
        self.closed = 0

    def __call__(self):
        script = self.runs[min(self.calls, len(self.runs) - 1)]
        self.calls += 1
        return self._run(script)

    async def _run(self, script):
        try:
            for item in script:
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self.closed += 1


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture()
def sleep():
    return RecordingSleep()


@pytest.mark.asyncio()
async def test_clean_end_is_not_restarted(sleep):
    factory = ScriptedFactory([1, 2, 3])

    items = [item async for item in supervise(factory, sleep=sleep)]

    assert items == [1, 2, 3]
    assert factory.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio()
async def test_reconnects_after_transport_failure(sleep):
    factory = ScriptedFactory([1, StreamClosedError("dropped")], [2, 3])

    items = [item async for item in supervise(factory, sleep=sleep)]

    assert items == [1, 2, 3]
    assert factory.calls == 2
    assert sleep.delays == [5.0]


@pytest.mark.asyncio()
async def test_gives_up_after_consecutive_failures(sleep):
    factory = ScriptedFactory([StreamConnectionError("refused")])

    with pytest.raises(StreamConnectionError, match="failed 4 consecutive times") as exc_info:
        async for _ in supervise(factory, max_attempts=4, base_delay=1.0, sleep=sleep):
            pass

    assert factory.calls == 4
    assert sleep.delays == [1.0, 2.0, 4.0]
    assert "refused" in str(exc_info.value)


@pytest.mark.asyncio()
async def test_backoff_is_capped(sleep):
    factory = ScriptedFactory([StreamConnectionError("refused")])

    with pytest.raises(StreamConnectionError):
        async for _ in supervise(
            factory, max_attempts=6, base_delay=5.0, max_delay=30.0, sleep=sleep
        ):
            pass

    assert sleep.delays == [5.0, 10.0, 20.0, 30.0, 30.0]


@pytest.mark.asyncio()
async def test_emission_resets_attempts(sleep):
    factory = ScriptedFactory(
        [StreamConnectionError("refused")],
        [StreamConnectionError("refused")],
        ["recovered", StreamClosedError("dropped")],
        [StreamConnectionError("refused")],
        ["done"],
    )

    items = [item async for item in supervise(factory, max_attempts=3, sleep=sleep)]

    assert items == ["recovered", "done"]
    assert sleep.delays == [5.0, 10.0, 5.0, 10.0]


@pytest.mark.asyncio()
async def test_other_errors_propagate_without_retry(sleep):
    factory = ScriptedFactory([ValueError("bug")])

    with pytest.raises(ValueError, match="bug"):
        async for _ in supervise(factory, sleep=sleep):
            pass

    assert factory.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio()
async def test_consumer_stop_closes_inner_stream(sleep):
    factory = ScriptedFactory([1, 2, 3])
    stream = supervise(factory, sleep=sleep)

    assert await anext(stream) == 1
    await stream.aclose()

    assert factory.closed == 1
