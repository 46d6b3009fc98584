# render.py
"""
Expression substitution for `${{ ... }}` placeholders.

Only the contexts that are fully known at planning time are resolved:

  matrix.<axis>   -> the instance's value for that axis
  runner.os       -> Linux | Windows | macOS
  env.<NAME>      -> job env merged with step env

Missing properties of those contexts render as "" (the runner does the
same). Every other context (secrets, github, steps, inputs, ...) and any
expression that does more than name a property, such as
`${{ runner.os == 'Windows' && 'pwsh' || 'bash' }}`, belongs to the
external runner and is left verbatim.
"""
from __future__ import annotations

import re
from dataclasses import replace
from typing import Dict, Mapping, Optional

from .model import Job, JobInstance, Step

_EXPR = re.compile(r"\$\{\{\s*(.*?)\s*\}\}")
_RESOLVED = ("matrix", "runner", "env")
_PROPERTY = re.compile(r"[A-Za-z_][\w-]*")


def context_for(instance: JobInstance, env: Optional[Mapping[str, str]] = None) -> Dict[str, Dict[str, str]]:
    return {
        "matrix": instance.matrix,
        "runner": {"os": instance.runner_os},
        "env": dict(env or {}),
    }


def render(text: str, context: Mapping[str, Mapping[str, str]]) -> str:
    def sub(m: re.Match) -> str:
        expr = m.group(1)
        head, dot, prop = expr.partition(".")
        # bare property lookups only
        if head not in _RESOLVED or not dot or not _PROPERTY.fullmatch(prop):
            return m.group(0)
        return str(context.get(head, {}).get(prop, ""))

    return _EXPR.sub(sub, text)


def _render_opt(text: Optional[str], context: Mapping[str, Mapping[str, str]]) -> Optional[str]:
    return render(text, context) if text is not None else None


def render_step(step: Step, instance: JobInstance, job_env: Optional[Mapping[str, str]] = None) -> Step:
    env = dict(job_env or {})
    env.update(step.env)
    ctx = context_for(instance, env)
    return replace(
        step,
        name=render(step.name, ctx),
        run=_render_opt(step.run, ctx),
        with_={k: render(v, ctx) for k, v in step.with_.items()},
        shell=_render_opt(step.shell, ctx),
        cwd=_render_opt(step.cwd, ctx),
        env={k: render(v, ctx) for k, v in step.env.items()},
    )


def render_steps(job: Job, instance: JobInstance) -> list[Step]:
    return [render_step(s, instance, job.env) for s in job.steps]
