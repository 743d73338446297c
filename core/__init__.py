"""Core monitoring: targets, snapshots and the stabilization state machine"""
from core.targets import SurfaceKind, Target, KNOWN_TARGETS, target_for_bundle_id, target_by_name
from core.snapshot import Snapshot
from core.watcher import (
    MonitorConfig,
    Phase,
    PhaseTransitionError,
    PollSchedule,
    StabilizationWatcher,
    adaptive_poll_interval,
    ends_with_shell_prompt,
)

__all__ = [
    'SurfaceKind',
    'Target',
    'KNOWN_TARGETS',
    'target_for_bundle_id',
    'target_by_name',
    'Snapshot',
    'MonitorConfig',
    'Phase',
    'PhaseTransitionError',
    'PollSchedule',
    'StabilizationWatcher',
    'adaptive_poll_interval',
    'ends_with_shell_prompt',
]
