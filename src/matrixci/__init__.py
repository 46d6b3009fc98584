from .dsl import job, sh, uses, matrix, wf, JobBuilder, build
from .model import Workflow, Job, Step, Matrix, CacheSpec, JobInstance
from .errors import MatrixCIError, ValidationError, WorkflowLoadError
from .expand import expand_job, expand_workflow
from .cache import CacheKey, resolve_cache_key, resolve_workflow_keys
from .plan import Plan, plan_workflow

__all__ = [
    "job", "sh", "uses", "matrix", "wf", "JobBuilder", "build",
    "Workflow", "Job", "Step", "Matrix", "CacheSpec", "JobInstance",
    "MatrixCIError", "ValidationError", "WorkflowLoadError",
    "expand_job", "expand_workflow",
    "CacheKey", "resolve_cache_key", "resolve_workflow_keys",
    "Plan", "plan_workflow",
]
