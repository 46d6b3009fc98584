# loader.py
"""
Workflow loading.

Two sources are supported:

  - GitHub Actions style YAML (`.yml` / `.yaml`): parsed with PyYAML,
    checked against pydantic schemas, then turned into a Workflow.
  - Python workflow files (`.py`): must define `workflow()` returning a
    Workflow (or a list of Jobs), or a module-level `WORKFLOW` / `JOBS`.

Schema problems come back as WorkflowLoadError. Anything the workflow
model itself rejects (unknown platform, empty axis, ...) surfaces as the
model's ValidationError, unchanged.
"""
from __future__ import annotations

import logging
import runpy
from collections.abc import Hashable
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from .errors import WorkflowLoadError
from .model import CacheSpec, Job, Matrix, Step, Workflow, known_platforms, scalar_str

log = logging.getLogger(__name__)

CACHE_ACTION = "actions/cache"
UNSUPPORTED_MATRIX_KEYS = ("include", "exclude")


# ----------------------------------------------------------------------
# YAML parsing
# ----------------------------------------------------------------------

class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that refuses duplicate mapping keys instead of keeping the last one."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _value_node in node.value:
            if key_node.tag == "tag:yaml.org,2002:merge":
                continue
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                continue
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def _read_yaml(path: Path) -> Dict[Any, Any]:
    if not path.is_file():
        raise WorkflowLoadError(str(path), "workflow file not found")

    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as err:
        raise WorkflowLoadError(str(path), f"cannot read file: {err}") from err

    try:
        parsed = yaml.load(raw_text, Loader=_UniqueKeyLoader)
    except yaml.YAMLError as err:
        raise WorkflowLoadError(str(path), "invalid YAML", details=[str(err)]) from err

    if not isinstance(parsed, dict):
        raise WorkflowLoadError(
            str(path), f"workflow must be a YAML mapping, got {type(parsed).__name__}"
        )

    # YAML 1.1 reads a bare `on:` key as boolean True
    if True in parsed and "on" not in parsed:
        parsed["on"] = parsed.pop(True)
    return parsed


# ----------------------------------------------------------------------
# Schemas
# ----------------------------------------------------------------------

class StepSchema(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Optional[str] = None
    run: Optional[str] = None
    uses: Optional[str] = None
    with_: Dict[str, Any] = Field(default_factory=dict, alias="with")
    shell: Optional[str] = None
    working_directory: Optional[str] = Field(default=None, alias="working-directory")
    env: Dict[str, Any] = Field(default_factory=dict)


class StrategySchema(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    fail_fast: bool = Field(default=True, alias="fail-fast")
    matrix: Optional[Dict[str, Any]] = None


class JobSchema(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    runs_on: Union[str, List[str]] = Field(alias="runs-on")
    strategy: Optional[StrategySchema] = None
    env: Dict[str, Any] = Field(default_factory=dict)
    steps: List[StepSchema] = Field(min_length=1)


class WorkflowSchema(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Optional[str] = None
    on: Any = None
    jobs: Dict[str, JobSchema] = Field(min_length=1)


# ----------------------------------------------------------------------
# Schema -> model
# ----------------------------------------------------------------------

def _str_map(values: Dict[str, Any]) -> Dict[str, str]:
    return {str(k): scalar_str(v) for k, v in values.items()}


def _triggers(on: Any) -> Dict[str, Any]:
    # on: push | on: [push, pull_request] | on: {push: {...}}
    if on is None:
        return {}
    if isinstance(on, str):
        return {on: None}
    if isinstance(on, list):
        return {str(e): None for e in on}
    if isinstance(on, dict):
        return dict(on)
    return {}


def _pick_platform(runs_on: Union[str, List[str]], known: frozenset[str]) -> str:
    if isinstance(runs_on, str):
        return runs_on
    for label in runs_on:
        if label in known:
            return label
    return runs_on[0] if runs_on else ""


def _step_from_schema(s: StepSchema) -> Step:
    if s.name:
        name = s.name
    elif s.run:
        name = f"Run {s.run.strip().splitlines()[0]}"
    else:
        name = s.uses or "<unnamed-step>"
    return Step(
        name=name,
        run=s.run,
        uses=s.uses,
        with_=_str_map(s.with_),
        shell=s.shell,
        cwd=s.working_directory,
        env=_str_map(s.env),
    )


def _cache_from_steps(steps: List[StepSchema]) -> Optional[CacheSpec]:
    for s in steps:
        if s.uses and s.uses.split("@", 1)[0] == CACHE_ACTION:
            raw_path = scalar_str(s.with_.get("path"))
            paths = tuple(p.strip() for p in raw_path.splitlines() if p.strip())
            key = s.with_.get("key")
            return CacheSpec(paths=paths, key=scalar_str(key) if key is not None else None)
    return None


def _job_from_schema(path: Path, name: str, js: JobSchema, known: frozenset[str]) -> Job:
    matrix = None
    fail_fast = True
    if js.strategy is not None:
        fail_fast = js.strategy.fail_fast
        if js.strategy.matrix is not None:
            unsupported = [k for k in UNSUPPORTED_MATRIX_KEYS if k in js.strategy.matrix]
            if unsupported:
                raise WorkflowLoadError(
                    str(path),
                    f"job {name!r}: matrix {'/'.join(unsupported)} is not supported",
                )
            matrix = Matrix.of(js.strategy.matrix, job=name)

    return Job(
        name=name,
        platform=_pick_platform(js.runs_on, known),
        steps=tuple(_step_from_schema(s) for s in js.steps),
        matrix=matrix,
        env=_str_map(js.env),
        fail_fast=fail_fast,
        cache=_cache_from_steps(js.steps),
    )


def load_yaml_workflow(path: str | Path, *, platforms: tuple[str, ...] = ()) -> Workflow:
    wf_path = Path(path).expanduser()
    raw = _read_yaml(wf_path)

    try:
        schema = WorkflowSchema.model_validate(raw)
    except SchemaError as err:
        details = [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in err.errors()]
        raise WorkflowLoadError(str(wf_path), "workflow does not match the expected schema", details=details) from err

    known = known_platforms(platforms)
    jobs = [_job_from_schema(wf_path, name, js, known) for name, js in schema.jobs.items()]
    workflow = Workflow(
        name=schema.name or wf_path.stem,
        jobs=tuple(jobs),
        triggers=_triggers(schema.on),
        platforms=frozenset(platforms),
    )
    log.debug("loaded %s: %d job(s) from %s", workflow.name, len(workflow), wf_path)
    return workflow


# ----------------------------------------------------------------------
# Python workflow files
# ----------------------------------------------------------------------

def load_python_workflow(path: str | Path, *, platforms: tuple[str, ...] = ()) -> Workflow:
    """
    Load a workflow from a python file path.

    The file must define either:
      - workflow() -> Workflow | List[Job]
      - WORKFLOW = Workflow(...)
      - JOBS = [Job, ...]

    `platforms` are accepted on top of the known set. A Workflow built
    inside the file is validated when the file builds it, so jobs on extra
    labels there need `wf(..., platforms=[...])` or MATRIXCI_PLATFORMS;
    lists of jobs are checked against `platforms` here.
    """
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.exists():
        raise WorkflowLoadError(str(wf_path), "workflow file not found")

    module_name = f"matrixci_workflow_{wf_path.stem}"
    globals_dict = runpy.run_path(str(wf_path), run_name=module_name)

    result: Any = None
    if "workflow" in globals_dict and callable(globals_dict["workflow"]):
        try:
            result = globals_dict["workflow"]()
        except TypeError as e:
            if "positional argument" in str(e):
                raise WorkflowLoadError(
                    str(wf_path),
                    "workflow() is being called with arguments (name collision with a helper?)",
                    details=["Use the 'wf' helper: `def workflow(): return wf(job(...), ...)`"],
                ) from e
            raise
    elif "WORKFLOW" in globals_dict:
        result = globals_dict["WORKFLOW"]
    elif "JOBS" in globals_dict:
        result = globals_dict["JOBS"]

    if isinstance(result, Workflow):
        if not platforms:
            return result
        return Workflow(
            name=result.name,
            jobs=result.jobs,
            triggers=result.triggers,
            platforms=result.platforms | frozenset(platforms),
        )
    if isinstance(result, list) and all(isinstance(j, Job) for j in result):
        return Workflow(name=wf_path.stem, jobs=tuple(result), platforms=frozenset(platforms))

    raise WorkflowLoadError(
        str(wf_path),
        "workflow file must define workflow() -> Workflow, WORKFLOW = Workflow(...) or JOBS = [Job, ...]",
    )


def load_workflow(path: str | Path, *, platforms: tuple[str, ...] = ()) -> Workflow:
    wf_path = Path(path)
    if wf_path.suffix in (".yml", ".yaml"):
        return load_yaml_workflow(wf_path, platforms=platforms)
    if wf_path.suffix == ".py":
        return load_python_workflow(wf_path, platforms=platforms)
    raise WorkflowLoadError(str(wf_path), f"unsupported workflow file type {wf_path.suffix!r} (want .yml, .yaml or .py)")
