"""
Shared test fixtures

Everything here runs without a terminal, editor or accessibility
permission: time is simulated and content comes from scripted timelines.
"""

import os
import tempfile

# Keep test runs out of the project's logs/ directory
os.environ.setdefault("VOX_LOG_DIR", tempfile.mkdtemp(prefix="vox-test-logs-"))

import pytest

from core.snapshot import Snapshot
from core.targets import TERMINAL, VS_CODE
from modules.readers.accessibility import TreeBackend


class FakeClock:
    """Monotonic clock advanced only by the injected sleep"""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds


class TimelineReader:
    """
    Stand-in for ContentSnapshotReader.

    Content is a list of (time, text) pairs; a read returns the text of the
    latest entry whose time has been reached. A text of None simulates a
    failed read.
    """

    def __init__(self, clock: FakeClock, timeline):
        self.clock = clock
        self.timeline = sorted(timeline, key=lambda entry: entry[0])
        self.reads = 0

    def text_at(self, now: float):
        text = None
        for at, value in self.timeline:
            if at <= now:
                text = value
        return text

    async def read(self, target):
        self.reads += 1
        return self.text_at(self.clock())

    async def snapshot(self, target):
        text = await self.read(target)
        if text is None:
            return None
        return Snapshot(text=text, target=target, captured_at=self.clock())


class Node:
    """Accessibility node for FakeTreeBackend"""

    def __init__(self, role=None, value=None, children=None):
        self.role = role
        self.value = value
        self.children = list(children or [])
        self.parent = None
        for child in self.children:
            child.parent = self


class FakeApp:
    def __init__(self, focused=None, window=None):
        self.focused = focused
        self.window = window


class FakeTreeBackend(TreeBackend):
    """In-memory accessibility tree with a switchable permission"""

    def __init__(self, app=None, trusted=True):
        self.app = app
        self.trusted = trusted
        self.trust_checks = 0
        self.permission_requests = 0
        self.enabled = []

    def is_trusted(self):
        self.trust_checks += 1
        return self.trusted

    def request_permission(self):
        self.permission_requests += 1
        return False

    def application(self, target):
        return self.app

    def enable_tree(self, app):
        self.enabled.append(app)
        return True

    def focused_element(self, app):
        return app.focused

    def focused_window(self, app):
        return app.window

    def parent(self, node):
        return node.parent

    def children(self, node):
        return node.children

    def role(self, node):
        return node.role

    def value(self, node):
        return node.value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def terminal():
    return TERMINAL


@pytest.fixture
def editor():
    return VS_CODE
