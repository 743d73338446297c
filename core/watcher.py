"""
Stabilization Watcher

Decides when a target's output has genuinely finished rather than paused.

Two-phase stabilization:
- Changing -> ConfirmingStable after a short quiet window
- ConfirmingStable -> Done after a longer confirmation window
Any change while confirming demotes back to Changing, so "thinking" and
tool-call gaps in AI sessions are not mistaken for completion.

Polling backs off as the target stays quiet, which keeps OS calls cheap
during long-running tasks while short commands still finish promptly.
An interactive shell prompt at the end of terminal output short-circuits
the confirmation windows.

The machine itself (observe/next_interval) has no notion of time source or
scheduler; run() drives it with injected clock and sleep callables.
"""

import asyncio
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from core.targets import Target
from utils.logger import get_logger

logger = get_logger('watcher')


class Phase(Enum):
    """Monitoring session phases"""
    SAMPLING = "sampling"
    CHANGING = "changing"
    CONFIRMING_STABLE = "confirming_stable"
    DONE = "done"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.DONE, Phase.TIMED_OUT)


# Phases only move forward, except Changing <-> Sampling and the
# ConfirmingStable -> Changing demotion.
ALLOWED_TRANSITIONS = {
    Phase.SAMPLING: {Phase.CHANGING, Phase.TIMED_OUT},
    Phase.CHANGING: {Phase.SAMPLING, Phase.CONFIRMING_STABLE, Phase.DONE, Phase.TIMED_OUT},
    Phase.CONFIRMING_STABLE: {Phase.CHANGING, Phase.DONE, Phase.TIMED_OUT},
    Phase.DONE: set(),
    Phase.TIMED_OUT: set(),
}


class PhaseTransitionError(RuntimeError):
    """Illegal phase transition requested"""
    pass


@dataclass
class PollSchedule:
    """Adaptive polling intervals keyed by seconds since the last change"""
    fast: float = 0.5       # actively changing
    medium: float = 2.0     # just stopped
    slow: float = 5.0       # probably done
    minimal: float = 10.0   # long-running task
    medium_after: float = 3.0
    slow_after: float = 8.0
    minimal_after: float = 15.0

    def interval(self, seconds_since_change: float) -> float:
        if seconds_since_change < self.medium_after:
            return self.fast
        if seconds_since_change < self.slow_after:
            return self.medium
        if seconds_since_change < self.minimal_after:
            return self.slow
        return self.minimal


@dataclass
class MonitorConfig:
    """Configuration for one monitoring session"""
    timeout: float = 30.0
    warmup_delay: float = 0.5
    initial_stabilize_delay: float = 3.0
    confirmation_delay: float = 15.0
    use_prompt_detection: bool = True
    prompt_max_line_length: int = 200
    poll: PollSchedule = field(default_factory=PollSchedule)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "MonitorConfig":
        """
        Build from a config mapping (monitor.yaml). Missing keys keep defaults.

        Raises:
            ValueError: On non-numeric or negative values
        """
        data = data or {}
        defaults = cls()

        def number(mapping: dict, key: str, default: float) -> float:
            raw = mapping.get(key, default)
            try:
                value = float(raw)
            except (TypeError, ValueError):
                raise ValueError(f"{key} must be a number, got {raw!r}")
            if value < 0:
                raise ValueError(f"{key} must not be negative, got {value}")
            return value

        intervals = data.get('poll_intervals') or {}
        thresholds = data.get('poll_thresholds') or {}
        base = PollSchedule()
        poll = PollSchedule(
            fast=number(intervals, 'fast', base.fast),
            medium=number(intervals, 'medium', base.medium),
            slow=number(intervals, 'slow', base.slow),
            minimal=number(intervals, 'minimal', base.minimal),
            medium_after=number(thresholds, 'medium', base.medium_after),
            slow_after=number(thresholds, 'slow', base.slow_after),
            minimal_after=number(thresholds, 'minimal', base.minimal_after),
        )

        return cls(
            timeout=number(data, 'timeout', defaults.timeout),
            warmup_delay=number(data, 'warmup_delay', defaults.warmup_delay),
            initial_stabilize_delay=number(
                data, 'initial_stabilize_delay', defaults.initial_stabilize_delay
            ),
            confirmation_delay=number(data, 'confirmation_delay', defaults.confirmation_delay),
            use_prompt_detection=bool(data.get('use_prompt_detection', defaults.use_prompt_detection)),
            prompt_max_line_length=int(
                number(data, 'prompt_max_line_length', defaults.prompt_max_line_length)
            ),
            poll=poll,
        )


DEFAULT_SCHEDULE = PollSchedule()


def adaptive_poll_interval(seconds_since_change: float, schedule: PollSchedule = DEFAULT_SCHEDULE) -> float:
    """Poll interval for the time elapsed since content last changed."""
    return schedule.interval(seconds_since_change)


# bash/sh "$", zsh "%", root "#", starship/pure/oh-my-zsh glyphs
PROMPT_GLYPHS = "$%#❯➜λ»"

# A glyph on its own, or a versioned shell name such as "bash-5.2$"
BARE_PROMPT_PATTERNS = [
    re.compile(r'^[$%#❯➜λ»]$'),
    re.compile(r'^(?:ba|z|k|fi|tc)?sh(?:-[\d.]+)?\s*[$%#]$'),
]

# Percentages and prices such as "45%" or "5$"
NUMERIC_ENDING = re.compile(r'\d\s*[$%]$')

# user@host, ~/path, /path, host:dir, [venv] or (venv) before the glyph
PROMPT_CONTEXT = re.compile(r'[@~/:\]\)].*[$%#❯➜λ»]$')


def ends_with_shell_prompt(content: str, max_line_length: int = 200) -> bool:
    """
    Check whether the last non-empty line looks like an interactive prompt.

    A prompt glyph alone is not enough: the line must be the glyph by
    itself, a shell name, or carry user, host or path context. Long lines
    and numbers such as "45%" are output that happens to end in a prompt
    character.
    """
    line = _last_non_empty_line(content)
    if line is None or len(line) > max_line_length:
        return False
    line = line.strip()
    if line[-1] not in PROMPT_GLYPHS:
        return False
    if any(pattern.match(line) for pattern in BARE_PROMPT_PATTERNS):
        return True
    if NUMERIC_ENDING.search(line):
        return False
    return PROMPT_CONTEXT.search(line) is not None


def strip_trailing_prompt(text: str, max_line_length: int = 200) -> str:
    """Remove a trailing prompt line from captured output."""
    if not ends_with_shell_prompt(text, max_line_length):
        return text
    lines = text.rstrip().split("\n")
    return "\n".join(lines[:-1]).strip()


def _last_non_empty_line(content: str) -> Optional[str]:
    for line in reversed(content.split("\n")):
        if line.strip():
            return line
    return None


class StabilizationWatcher:
    """
    Adaptive polling state machine for one monitoring session.

    Stability is only ever declared once the content differs from the
    initial snapshot; a command that has not started producing output keeps
    the watcher sampling until the timeout.
    """

    def __init__(
        self,
        target: Target,
        initial_text: str,
        config: MonitorConfig,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.target = target
        self.initial_text = initial_text
        self.latest_text = initial_text
        self.config = config
        self.clock = clock
        self.sleep = sleep

        self.phase = Phase.SAMPLING
        self.history: List[Phase] = [Phase.SAMPLING]
        self.started_at: Optional[float] = None
        self.last_change_at: Optional[float] = None
        self.confirming_since: Optional[float] = None
        self.completed_by_prompt = False
        self.polls = 0

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def start(self, now: float):
        self.started_at = now
        self.last_change_at = now

    def elapsed(self, now: float) -> float:
        return now - self.started_at

    def next_interval(self, now: float) -> float:
        """Adaptive interval, clamped so the loop never sleeps past the timeout"""
        interval = self.config.poll.interval(now - self.last_change_at)
        remaining = self.config.timeout - self.elapsed(now)
        return max(0.0, min(interval, remaining))

    def observe(self, text: Optional[str], now: float) -> Phase:
        """
        Feed one poll result into the machine.

        Args:
            text: Content read this tick, or None if the read failed
            now: Clock reading for this tick

        Returns:
            Phase after the observation
        """
        if self.phase.is_terminal or text is None:
            return self.phase

        self.polls += 1

        if text != self.latest_text:
            self.latest_text = text
            self.last_change_at = now
            self.confirming_since = None
            if text == self.initial_text:
                if self.phase is Phase.CONFIRMING_STABLE:
                    self._transition(Phase.CHANGING)
                self._transition(Phase.SAMPLING)
            else:
                self._transition(Phase.CHANGING)

        if self.latest_text == self.initial_text:
            return self.phase

        if self._prompt_reached():
            self.completed_by_prompt = True
            self._transition(Phase.DONE)
            return self.phase

        quiet = now - self.last_change_at
        if self.phase is Phase.CHANGING and quiet >= self.config.initial_stabilize_delay:
            self.confirming_since = now
            self._transition(Phase.CONFIRMING_STABLE)

        if (self.phase is Phase.CONFIRMING_STABLE
                and now - self.confirming_since >= self.config.confirmation_delay):
            self._transition(Phase.DONE)

        return self.phase

    def expire(self) -> Phase:
        """Overall deadline reached"""
        if not self.phase.is_terminal:
            self._transition(Phase.TIMED_OUT)
        return self.phase

    def _prompt_reached(self) -> bool:
        return (
            self.config.use_prompt_detection
            and self.target.is_append_only
            and ends_with_shell_prompt(self.latest_text, self.config.prompt_max_line_length)
        )

    def _transition(self, new_phase: Phase):
        if new_phase is self.phase:
            return
        if new_phase not in ALLOWED_TRANSITIONS[self.phase]:
            raise PhaseTransitionError(f"{self.phase.value} -> {new_phase.value}")

        logger.debug(f"{self.target.name}: {self.phase.value} -> {new_phase.value}")
        self.phase = new_phase
        self.history.append(new_phase)

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    async def run(self, read: Callable[[], Awaitable[Optional[str]]]) -> Phase:
        """
        Poll until Done or TimedOut. One suspension point per iteration.

        Args:
            read: Coroutine function returning the target's text or None
        """
        self.start(self.clock())
        await self.sleep(self.config.warmup_delay)

        while True:
            now = self.clock()
            if self.elapsed(now) >= self.config.timeout:
                self.expire()
                break

            await self.sleep(self.next_interval(now))

            self.observe(await read(), self.clock())
            if self.phase.is_terminal:
                break

        logger.info(
            f"{self.target.name}: {self.phase.value} after "
            f"{self.elapsed(self.clock()):.1f}s, {self.polls} polls"
        )
        return self.phase
