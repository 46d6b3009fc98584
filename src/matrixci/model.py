# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from . import settings
from .errors import ValidationError


# GitHub-hosted runner labels plus the bare OS names.
DEFAULT_PLATFORMS = frozenset(
    {
        "ubuntu-latest", "ubuntu-24.04", "ubuntu-22.04", "ubuntu-20.04",
        "windows-latest", "windows-2025", "windows-2022", "windows-2019",
        "macos-latest", "macos-15", "macos-14", "macos-13",
        "linux", "windows", "macos",
    }
)


def known_platforms(extra: Iterable[str] = ()) -> frozenset[str]:
    return DEFAULT_PLATFORMS | frozenset(settings.EXTRA_PLATFORMS) | frozenset(extra)


def runner_os(platform: str) -> str:
    """OS family for a runner label, the value `${{ runner.os }}` expands to."""
    p = platform.lower()
    if p.startswith(("ubuntu", "linux")):
        return "Linux"
    if p.startswith("windows"):
        return "Windows"
    if p.startswith(("macos", "osx")):
        return "macOS"
    return platform


def scalar_str(value: Any) -> str:
    # YAML hands us bools/ints/floats; print them the way the expression language does
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


def _axis_value(job: str, axis: str, value: Any) -> str:
    if isinstance(value, (str, int, float)):
        return scalar_str(value)
    raise ValidationError(
        f"matrix values must be scalars, got {type(value).__name__}",
        job=job,
        axis=axis,
    )


@dataclass(frozen=True)
class Step:
    """A single step inside a CI job: a shell command or an action reference."""
    name: str
    run: str | None = None
    uses: str | None = None
    with_: Dict[str, str] = field(default_factory=dict, hash=False)
    shell: str | None = None
    cwd: str | None = None
    env: Dict[str, str] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class CacheSpec:
    """
    What a job persists between runs.

    `paths` are opaque per-platform strings (a Windows job may say
    C:\\Users\\runneradmin\\.cargo, a Linux job ~/.cargo); they are passed
    through untouched. `key` is an optional expression template such as
    "${{ runner.os }}-cargo-${{ matrix.features }}".
    """
    paths: Tuple[str, ...] = ()
    key: str | None = None


AxisSource = Union[Mapping[str, Iterable[Any]], Iterable[Tuple[str, Iterable[Any]]]]


@dataclass(frozen=True)
class Matrix:
    """
    Ordered axis name -> ordered values.

    Stored as pairs rather than a dict so a duplicated axis name in the
    declaration survives long enough to be reported.
    """
    axes: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()

    @classmethod
    def of(cls, source: AxisSource, *, job: str | None = None) -> "Matrix":
        pairs = source.items() if isinstance(source, Mapping) else source
        axes = []
        for axis, values in pairs:
            if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
                raise ValidationError("matrix axis must be a list of values", job=job, axis=axis)
            axes.append((axis, tuple(_axis_value(job or "", axis, v) for v in values)))
        return cls(axes=tuple(axes))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.axes]

    def values(self, axis: str) -> Tuple[str, ...]:
        for name, vals in self.axes:
            if name == axis:
                return vals
        raise KeyError(axis)

    def validate(self, job: str) -> None:
        seen: set[str] = set()
        for name, vals in self.axes:
            if not isinstance(name, str) or not name.strip():
                raise ValidationError("matrix axis name must be a non-empty string", job=job, axis=str(name))
            if name in seen:
                raise ValidationError("duplicate matrix axis", job=job, axis=name)
            seen.add(name)
            if not vals:
                raise ValidationError("matrix axis has no values", job=job, axis=name)

    def __len__(self) -> int:
        return len(self.axes)


@dataclass(frozen=True)
class Job:
    """
    A CI job: where it runs, its matrix, its steps and cache scope.

    `fail_fast` is only carried for the external runner; nothing here
    cancels anything.
    """
    name: str
    platform: str
    steps: Tuple[Step, ...] = ()
    matrix: Optional[Matrix] = None
    env: Dict[str, str] = field(default_factory=dict, hash=False)
    fail_fast: bool = True
    cache: Optional[CacheSpec] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("job name must be a non-empty string")
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "env", {str(k): scalar_str(v) for k, v in self.env.items()})

        for step in self.steps:
            if (step.run is None) == (step.uses is None):
                raise ValidationError(
                    f"step {step.name!r} must define exactly one of run/uses",
                    job=self.name,
                )
        if self.matrix is not None:
            self.matrix.validate(self.name)


def _job_platform_known(job: Job, platforms: frozenset[str]) -> None:
    if job.platform not in platforms:
        raise ValidationError(
            f"unknown platform {job.platform!r}; known: {sorted(platforms)}",
            job=job.name,
        )


@dataclass(frozen=True)
class Workflow:
    """
    Named, ordered collection of jobs.

    Declaration order is kept: later jobs may rely on caches earlier jobs
    populate, even though the runner executes them in parallel.
    """
    name: str
    jobs: Tuple[Job, ...] = ()
    triggers: Dict[str, Any] = field(default_factory=dict, hash=False)
    platforms: frozenset[str] = field(default_factory=known_platforms)

    def __post_init__(self) -> None:
        object.__setattr__(self, "jobs", tuple(self.jobs))
        object.__setattr__(self, "platforms", known_platforms(self.platforms))

        seen: set[str] = set()
        for job in self.jobs:
            if job.name in seen:
                raise ValidationError("duplicate job name", job=job.name)
            seen.add(job.name)
            _job_platform_known(job, self.platforms)

    def __iter__(self) -> Iterator[Job]:
        return iter(self.jobs)

    def __len__(self) -> int:
        return len(self.jobs)

    def job(self, name: str) -> Job:
        for j in self.jobs:
            if j.name == name:
                return j
        raise KeyError(name)


@dataclass(frozen=True)
class JobInstance:
    """One concrete variant of a job after matrix expansion."""
    job: str
    platform: str
    assignment: Tuple[Tuple[str, str], ...] = ()
    index: int = 0

    @property
    def matrix(self) -> Dict[str, str]:
        return dict(self.assignment)

    @property
    def runner_os(self) -> str:
        return runner_os(self.platform)

    @property
    def label(self) -> str:
        # Same shape the Actions UI uses: "cargo-test-linux (--all-features)"
        if not self.assignment:
            return self.job
        return f"{self.job} ({', '.join(v for _, v in self.assignment)})"
