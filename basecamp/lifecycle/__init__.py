"""Install and removal of codebase repositories."""

from .install import AddReport, InstallOrchestrator, InstallReport
from .jobs import InstallEvent, InstallJob, JobState
from .progress import ProgressReporter
from .removal import (
    OrphanedDirectory, RemovalAction, RemovalOutcome, RemovalPlan, RemovalReport,
    RemovalSafetyEngine, SafetyVerdict, UnsafeReason, Verdict
)

__all__ = [
    'AddReport',
    'InstallOrchestrator',
    'InstallReport',
    'InstallEvent',
    'InstallJob',
    'JobState',
    'ProgressReporter',
    'OrphanedDirectory',
    'RemovalAction',
    'RemovalOutcome',
    'RemovalPlan',
    'RemovalReport',
    'RemovalSafetyEngine',
    'SafetyVerdict',
    'UnsafeReason',
    'Verdict'
]
