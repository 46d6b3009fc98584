"""Console output formatting utilities for matrixci."""

from __future__ import annotations

import logging
import sys
from typing import Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_workflow(self, workflow: str, source: str, job_count: int, instance_count: int) -> None:
        print("\nWORKFLOW")
        print(f"Name: {workflow}")
        print(f"Source: {source}")
        print(f"Jobs: {job_count}")
        print(f"Instances: {instance_count}")
        print()

    def print_job(self, name: str, platform: str, fail_fast: bool) -> None:
        flag = "fail-fast" if fail_fast else "no-fail-fast"
        print(f"\nJOB: {name} [{platform}, {flag}]")

    def print_instance(self, label: str, key: str, rendered: Optional[str] = None) -> None:
        print(f"  {label}")
        print(f"    cache: {key}")
        if rendered is not None:
            print(f"    cache (declared): {rendered}")

    def print_step(self, name: str, detail: str) -> None:
        print(f"    STEP: {name}: {detail}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


def configure_logging(debug: bool = False) -> None:
    """Library loggers go to stderr; DEBUG only with --debug."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
