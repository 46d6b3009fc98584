# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


class MatrixCIError(Exception):
    """Base for everything matrixci raises on purpose."""


@dataclass
class ValidationError(MatrixCIError):
    """
    Malformed workflow declaration.

    Raised eagerly while the workflow model is being constructed, never
    during expansion or key resolution. `job` / `axis` name the offender
    when there is one so the CLI can point at it.
    """
    message: str
    job: str | None = None
    axis: str | None = None

    def __str__(self) -> str:
        where = []
        if self.job:
            where.append(f"job={self.job}")
        if self.axis:
            where.append(f"axis={self.axis}")
        if not where:
            return self.message
        return f"{self.message} ({', '.join(where)})"


@dataclass
class WorkflowLoadError(MatrixCIError):
    """A workflow file could not be read, parsed or turned into a Workflow."""
    path: str
    message: str
    details: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        lines = [f"{self.path}: {self.message}"]
        lines.extend(f"  {d}" for d in self.details)
        return "\n".join(lines)
