# src/matrixci/dsl.py
from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .errors import ValidationError
from .model import CacheSpec, Job, Matrix, Step, Workflow, scalar_str


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def sh(name: str, cmd: str, *, cwd: str | None = None, shell: str | None = None) -> Step:
    """Create a shell step."""
    return Step(name=name, run=cmd, cwd=cwd, shell=shell)


def uses(name: str, action: str, **with_: Any) -> Step:
    """Create an action step, e.g. uses("Checkout", "actions/checkout@v2")."""
    return Step(name=name, uses=action, with_={k: scalar_str(v) for k, v in with_.items()})


# ---------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------

def matrix(axes: Optional[Mapping[str, Iterable[Any]]] = None, **kw: Iterable[Any]) -> Matrix:
    """
    Build a Matrix. Axis order is declaration order (first varies slowest).

        matrix(features=["--all-features", "--no-default-features --lib"])
        matrix({"rust-version": ["stable", "beta"]}, os=["linux", "macos"])
    """
    pairs = list((axes or {}).items()) + list(kw.items())
    return Matrix.of(pairs)


# ---------------------------------------------------------------------
# Functional Job helper
# ---------------------------------------------------------------------

def job(
    name: str,
    *steps: Step,  # allow: job("x", sh(...), sh(...))
    runs_on: str,
    steps_list: Optional[List[Step]] = None,  # allow: job("x", steps_list=[...])
    matrix: Optional[Union[Matrix, Mapping[str, Iterable[Any]]]] = None,
    env: Optional[Dict[str, str]] = None,
    fail_fast: bool = True,
    cache_paths: Optional[List[str]] = None,
    cache_key: Optional[str] = None,
    cwd: str | None = None,  # default cwd applied to steps missing cwd
) -> Job:
    steps_final: List[Step] = []
    if steps_list:
        steps_final.extend(list(steps_list))
    steps_final.extend(list(steps))

    if not steps_final:
        raise ValidationError("job must have at least one step", job=name)

    if cwd is not None:
        steps_final = [s if s.cwd is not None or s.run is None else replace(s, cwd=cwd) for s in steps_final]

    if matrix is not None and not isinstance(matrix, Matrix):
        matrix = Matrix.of(matrix, job=name)

    cache = None
    if cache_paths is not None or cache_key is not None:
        cache = CacheSpec(paths=tuple(cache_paths or ()), key=cache_key)

    return Job(
        name=name,
        platform=runs_on,
        steps=tuple(steps_final),
        matrix=matrix,
        env=env or {},
        fail_fast=fail_fast,
        cache=cache,
    )


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class JobBuilder:
    def __init__(self, name: str):
        self.name = name
        self._platform: str | None = None
        self._steps: list[Step] = []
        self._axes: list[tuple[str, list[Any]]] = []
        self._env: dict[str, str] = {}
        self._fail_fast: bool = True
        self._cache: Optional[CacheSpec] = None

    def runs_on(self, platform: str):
        self._platform = platform
        return self

    def define_step(self, name: str, run: str, cwd: str | None = None, shell: str | None = None):
        self._steps.append(Step(name=name, run=run, cwd=cwd, shell=shell))
        return self

    def use_action(self, name: str, action: str, **with_: Any):
        self._steps.append(uses(name, action, **with_))
        return self

    def with_axis(self, axis: str, *values: Any):
        # duplicates are kept so Matrix.validate can report them
        self._axes.append((axis, list(values)))
        return self

    def with_env(self, **env):
        # force values to str for stable hashing + env compatibility
        self._env.update({k: scalar_str(v) for k, v in env.items()})
        return self

    def fail_fast(self, enabled: bool = True):
        self._fail_fast = enabled
        return self

    def cache(self, *paths: str, key: str | None = None):
        self._cache = CacheSpec(paths=tuple(paths), key=key)
        return self

    def build(self) -> Job:
        if self._platform is None:
            raise ValidationError("job has no platform (call runs_on)", job=self.name)
        if not self._steps:
            raise ValidationError("job has no steps", job=self.name)

        return Job(
            name=self.name,
            platform=self._platform,
            steps=tuple(self._steps),
            matrix=Matrix.of(self._axes, job=self.name) if self._axes else None,
            env=dict(self._env),
            fail_fast=self._fail_fast,
            cache=self._cache,
        )


def build(name: str) -> JobBuilder:
    """Convenience: build('test').runs_on('linux').define_step(...).build()"""
    return JobBuilder(name)


# ---------------------------------------------------------------------
# Workflow helper (single-file story)
# ---------------------------------------------------------------------

def wf(
    *jobs: Job,
    name: str = "workflow",
    on: Optional[Dict[str, Any]] = None,
    platforms: Iterable[str] = (),
) -> Workflow:
    """
    Workflow definition helper. Validation happens here, eagerly.

    Users can write:
        from matrixci import wf, job, sh

        def workflow():
            return wf(
                job("lint", sh(...), runs_on="ubuntu-latest"),
                job("test", sh(...), runs_on="ubuntu-latest", matrix={...}),
                name="ci",
            )
    """
    return Workflow(name=name, jobs=tuple(jobs), triggers=dict(on or {}), platforms=frozenset(platforms))
