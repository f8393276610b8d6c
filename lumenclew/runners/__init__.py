"""Analyzer runner registry for Lumen Clew."""

from lumenclew.config import Config
from lumenclew.runners.accessibility import AccessibilityRunner
from lumenclew.runners.base import BaseRunner, RunnerResult, RunStatus
from lumenclew.runners.dependencies import DependencyRunner
from lumenclew.runners.lint import LintRunner
from lumenclew.runners.secrets import SecretsRunner

RUNNERS: list[type[BaseRunner]] = [
    LintRunner,
    DependencyRunner,
    SecretsRunner,
    AccessibilityRunner,
]


def default_runners(config: Config) -> list[BaseRunner]:
    return [runner_cls(config) for runner_cls in RUNNERS]


__all__ = [
    "BaseRunner",
    "RunnerResult",
    "RunStatus",
    "LintRunner",
    "DependencyRunner",
    "SecretsRunner",
    "AccessibilityRunner",
    "RUNNERS",
    "default_runners",
]
