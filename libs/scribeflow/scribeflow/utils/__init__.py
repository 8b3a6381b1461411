"""Utility helpers."""

from scribeflow.utils.logging_setup import setup_logging
from scribeflow.utils.subprocess import RunResult, run_command_line, run_subprocess

__all__ = ["RunResult", "run_command_line", "run_subprocess", "setup_logging"]
