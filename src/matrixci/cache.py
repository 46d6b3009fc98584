# cache.py
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

from .expand import expand_job
from .model import Job, JobInstance, Workflow
from .render import context_for, render

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Core idea
# ---------------------------------------------------------------------
# Instance-level cache scoping:
#   key = [prefix] | platform | axis=value | axis=value ...
#
#   - axes appear in declared order, so two instances with the same
#     platform and the same assignment always get the same key
#   - every component is percent-escaped, so "|" and "=" can only come
#     from the composition itself and any differing value gives a
#     differing key
#
# The digest is a sha256 over the same payload as stable JSON, handy as a
# fixed-length storage path. Nothing in here touches disk or network.
# ---------------------------------------------------------------------

KEY_DELIMITER = "|"
KEY_VERSION = 1  # bump this if you change the composition


@dataclass(frozen=True)
class CacheKey:
    value: str
    digest: str
    rendered: Optional[str] = None  # job's own key template, if it declared one
    payload: Dict = field(default_factory=dict, compare=False)

    def __str__(self) -> str:
        return self.value

    @property
    def short(self) -> str:
        return self.digest[:12]


def _sha256_bytes(data: bytes) -> str:
    h = hashlib.sha256()
    h.update(data)
    return h.hexdigest()


def _sha256_str(s: str) -> str:
    return _sha256_bytes(s.encode("utf-8"))


def _json_dumps_stable(obj) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _escape(component: str) -> str:
    return quote(component, safe="")


def compose_key(platform: str, assignment: Tuple[Tuple[str, str], ...], prefix: Optional[str] = None) -> str:
    parts: List[str] = []
    if prefix:
        parts.append(_escape(prefix))
    parts.append(_escape(platform))
    parts.extend(f"{_escape(axis)}={_escape(value)}" for axis, value in assignment)
    return KEY_DELIMITER.join(parts)


def resolve_cache_key(
    instance: JobInstance,
    *,
    prefix: Optional[str] = None,
    template: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> CacheKey:
    """
    Cache scope for one job instance.

    Only prefix, platform and assignment feed `value` / `digest`. The job
    name is not part of the key: identical variants of different jobs on
    the same platform share a scope unless `prefix` namespaces them.
    """
    payload = {
        "v": KEY_VERSION,
        "prefix": prefix,
        "platform": instance.platform,
        # list of pairs, not a dict: declared order is part of the identity
        "assignment": [list(pair) for pair in instance.assignment],
    }
    rendered = render(template, context_for(instance, env)) if template else None

    return CacheKey(
        value=compose_key(instance.platform, instance.assignment, prefix),
        digest=_sha256_str(_json_dumps_stable(payload)),
        rendered=rendered,
        payload=payload,
    )


def resolve_job_keys(job: Job, *, prefix: Optional[str] = None) -> List[Tuple[JobInstance, CacheKey]]:
    template = job.cache.key if job.cache else None
    out = [(inst, resolve_cache_key(inst, prefix=prefix, template=template, env=job.env)) for inst in expand_job(job)]
    log.debug("resolved %d cache key(s) for %s", len(out), job.name)
    return out


def resolve_workflow_keys(
    workflow: Workflow,
    *,
    prefix: Optional[str] = None,
) -> Dict[str, List[Tuple[JobInstance, CacheKey]]]:
    return {job.name: resolve_job_keys(job, prefix=prefix) for job in workflow}
