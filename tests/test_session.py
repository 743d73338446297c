"""
Test MonitorSession

Full sessions on a simulated clock: the reader serves scripted content
and every sleep advances time instantly.
"""

import asyncio

import pytest
from unittest.mock import Mock, AsyncMock

from conftest import FakeClock, TimelineReader
from core.session import MonitorSession, monitor
from core.snapshot import Snapshot
from core.targets import CLAUDE_CODE, TERMINAL, VS_CODE
from core.watcher import MonitorConfig, Phase


def make_session(clock, reader, target, initial_text, config=None):
    initial = Snapshot(text=initial_text, target=target, captured_at=clock())
    return MonitorSession(
        target=target,
        initial=initial,
        config=config or MonitorConfig(),
        reader=reader,
        clock=clock,
        sleep=clock.sleep,
    )


class TestMonitorSession:
    """End-to-end monitoring scenarios"""

    @pytest.mark.asyncio
    async def test_prompt_returns_immediately(self, clock):
        """Test a finished shell command is reported at the first poll"""
        initial = "$ git status\nOn branch main"
        after = "$ git status\nOn branch main\nnothing to commit, working tree clean\n$ "
        reader = TimelineReader(clock, [(0.0, initial), (0.5, after)])

        session = make_session(clock, reader, TERMINAL, initial)
        output = await session.run()

        assert output == "nothing to commit, working tree clean"
        assert session.phase == Phase.DONE
        assert session.watcher.completed_by_prompt == True
        # Warm-up plus one fast poll
        assert clock.now == 1.0

    @pytest.mark.asyncio
    async def test_progress_percentage_is_not_a_prompt(self, clock):
        """Test a line ending in "45%" does not finish the session early"""
        initial = "$ claude\n> install the dependencies"
        progress = initial + "\n● Installing dependencies 45%"
        finished = initial + "\n● Installing dependencies 100%\n● Wrote 12 files\n$ "
        reader = TimelineReader(clock, [(0.0, initial), (1.0, progress), (6.0, finished)])

        session = make_session(clock, reader, CLAUDE_CODE, initial)
        output = await session.run()

        assert session.phase == Phase.DONE
        assert session.watcher.completed_by_prompt == True
        assert clock.now == pytest.approx(6.0)
        assert output == "● Installing dependencies 100%\n● Wrote 12 files"

    @pytest.mark.asyncio
    async def test_no_change_times_out_with_none(self, clock):
        """Test an unchanging editor yields no output"""
        reader = TimelineReader(clock, [(0.0, "Explorer\nmain.py")])
        config = MonitorConfig(timeout=30)

        session = make_session(clock, reader, VS_CODE, "Explorer\nmain.py", config)
        output = await session.run()

        assert output is None
        assert session.phase == Phase.TIMED_OUT
        assert clock.now == pytest.approx(30.0)
        assert Phase.CHANGING not in session.watcher.history

    @pytest.mark.asyncio
    async def test_pause_demotes_instead_of_finishing(self, clock):
        """Test output after a quiet gap extends the session"""
        initial = "$ claude\n> refactor the parser"
        first = initial + "\n● Reading parser.py"
        second = first + "\n● Updated 3 files"
        reader = TimelineReader(clock, [(0.0, initial), (1.0, first), (10.0, second)])

        session = make_session(clock, reader, CLAUDE_CODE, initial)
        output = await session.run()

        history = session.watcher.history
        assert history == [
            Phase.SAMPLING,
            Phase.CHANGING,
            Phase.CONFIRMING_STABLE,
            Phase.CHANGING,
            Phase.CONFIRMING_STABLE,
            Phase.DONE,
        ]
        assert session.last_change_at == 10.0
        # Not declared done during the first quiet window
        assert clock.now >= 10.0 + 3 + 15
        assert output == "● Reading parser.py\n● Updated 3 files"

    @pytest.mark.asyncio
    async def test_timeout_returns_best_effort(self, clock):
        """Test output still streaming at the deadline is returned"""
        initial = "$ tail -f app.log"
        timeline = [(0.0, initial)]
        text = initial
        for i in range(1, 25):
            text += f"\nrequest {i}"
            timeline.append((i * 0.5, text))
        reader = TimelineReader(clock, timeline)
        config = MonitorConfig(timeout=10)

        session = make_session(clock, reader, TERMINAL, initial, config)
        output = await session.run()

        assert session.phase == Phase.TIMED_OUT
        assert output.startswith("request 1\n")
        assert "request 20" in output

    @pytest.mark.asyncio
    async def test_failed_reads_are_skipped(self, clock):
        """Test None reads are ticks without content"""
        initial = "$ make"
        done = "$ make\nok\n$ "
        reader = TimelineReader(clock, [(0.0, initial), (0.5, None), (2.0, done)])

        session = make_session(clock, reader, TERMINAL, initial)
        output = await session.run()

        assert output == "ok"
        assert session.watcher.polls == 1
        assert reader.reads > 1

    @pytest.mark.asyncio
    async def test_reader_error_degrades(self, clock):
        """Test a raising reader never escapes the session"""
        reader = Mock()
        reader.read = AsyncMock(side_effect=RuntimeError("boom"))

        session = make_session(clock, reader, TERMINAL, "$ ls")
        output = await session.run()

        assert output is None

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, clock):
        """Test an external cancel is not swallowed"""
        async def never(target):
            await asyncio.Event().wait()

        reader = Mock()
        reader.read = never

        session = make_session(clock, reader, TERMINAL, "$ ls")
        task = asyncio.ensure_future(session.run())
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


class TestMonitorFunction:
    """Module-level entry point"""

    @pytest.mark.asyncio
    async def test_monitor(self, clock):
        """Test monitor() wires a session"""
        initial = "$ pwd"
        reader = TimelineReader(clock, [(0.0, initial), (0.5, "$ pwd\n/home/dev\n$ ")])
        snapshot = Snapshot(text=initial, target=TERMINAL, captured_at=0.0)

        output = await monitor(TERMINAL, snapshot, reader=reader, clock=clock, sleep=clock.sleep)

        assert output == "/home/dev"
