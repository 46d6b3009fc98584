# plan.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import settings
from .cache import CacheKey, resolve_job_keys
from .model import Job, JobInstance, Step, Workflow
from .render import render_steps

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedInstance:
    """Everything the external runner needs to schedule one job instance."""
    instance: JobInstance
    cache_key: CacheKey
    steps: List[Step]
    env: Dict[str, str] = field(default_factory=dict)
    fail_fast: bool = True
    cache_paths: tuple[str, ...] = ()


@dataclass(frozen=True)
class Plan:
    workflow: str
    triggers: Dict[str, Any]
    jobs: Dict[str, List[PlannedInstance]]

    @property
    def instances(self) -> List[PlannedInstance]:
        return [p for planned in self.jobs.values() for p in planned]

    def to_dict(self) -> dict:
        return {
            "workflow": self.workflow,
            "triggers": self.triggers,
            "jobs": {name: [planned_to_dict(p) for p in planned] for name, planned in self.jobs.items()},
        }


def step_to_dict(step: Step) -> dict:
    step_dict: Dict[str, Any] = {"name": step.name}
    if step.run is not None:
        step_dict["run"] = step.run
    if step.uses is not None:
        step_dict["uses"] = step.uses
    if step.with_:
        step_dict["with"] = step.with_
    if step.shell is not None:
        step_dict["shell"] = step.shell
    if step.cwd is not None:
        step_dict["cwd"] = step.cwd
    if step.env:
        step_dict["env"] = step.env
    return step_dict


def planned_to_dict(p: PlannedInstance) -> dict:
    inst = p.instance
    out = {
        "job": inst.job,
        "label": inst.label,
        "index": inst.index,
        "platform": inst.platform,
        "runner_os": inst.runner_os,
        "matrix": inst.matrix,
        "fail_fast": p.fail_fast,
        "env": p.env,
        "cache": {
            "key": p.cache_key.value,
            "digest": p.cache_key.digest,
            "paths": list(p.cache_paths),
        },
        "steps": [step_to_dict(s) for s in p.steps],
    }
    if p.cache_key.rendered is not None:
        out["cache"]["rendered_key"] = p.cache_key.rendered
    return out


def plan_job(job: Job, *, prefix: Optional[str] = None) -> List[PlannedInstance]:
    paths = job.cache.paths if job.cache else ()
    return [
        PlannedInstance(
            instance=inst,
            cache_key=key,
            steps=render_steps(job, inst),
            env=dict(job.env),
            fail_fast=job.fail_fast,
            cache_paths=paths,
        )
        for inst, key in resolve_job_keys(job, prefix=prefix)
    ]


def plan_workflow(workflow: Workflow, *, prefix: Optional[str] = None) -> Plan:
    """
    construct -> validate (already done by Workflow) -> expand -> resolve.

    `prefix` defaults to MATRIXCI_CACHE_PREFIX when not given.
    """
    if prefix is None:
        prefix = settings.CACHE_PREFIX

    jobs = {job.name: plan_job(job, prefix=prefix) for job in workflow}
    log.debug(
        "planned %s: %d job(s), %d instance(s)",
        workflow.name,
        len(jobs),
        sum(len(v) for v in jobs.values()),
    )
    return Plan(workflow=workflow.name, triggers=dict(workflow.triggers), jobs=jobs)
