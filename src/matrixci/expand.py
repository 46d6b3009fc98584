# expand.py
from __future__ import annotations

import itertools
import logging
import math
from typing import Dict, List

from .model import Job, JobInstance, Workflow

log = logging.getLogger(__name__)


def instance_count(job: Job) -> int:
    """Number of instances expand_job() will produce, without building them."""
    if job.matrix is None:
        return 1
    return math.prod(len(vals) for _, vals in job.matrix.axes)


def expand_job(job: Job) -> List[JobInstance]:
    """
    Cross-product of the job's matrix axes.

    The first declared axis varies slowest:
        {os: [a, b], features: [x, y]} -> (a,x) (a,y) (b,x) (b,y)

    Duplicate values are kept and give duplicate instances. A job without
    a matrix gives exactly one instance with an empty assignment.
    """
    if job.matrix is None or len(job.matrix) == 0:
        return [JobInstance(job=job.name, platform=job.platform, assignment=(), index=0)]

    names = job.matrix.names
    value_lists = [vals for _, vals in job.matrix.axes]

    out: List[JobInstance] = []
    for idx, combo in enumerate(itertools.product(*value_lists)):
        out.append(
            JobInstance(
                job=job.name,
                platform=job.platform,
                assignment=tuple(zip(names, combo)),
                index=idx,
            )
        )

    log.debug("expanded %s into %d instance(s) over axes %s", job.name, len(out), names)
    return out


def expand_workflow(workflow: Workflow) -> Dict[str, List[JobInstance]]:
    """job name -> instances, in job declaration order."""
    return {job.name: expand_job(job) for job in workflow}
