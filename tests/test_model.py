"""Workflow model construction and validation."""

from __future__ import annotations

import pytest

from matrixci import settings
from matrixci.dsl import job, sh, uses, wf
from matrixci.errors import ValidationError
from matrixci.model import Job, JobInstance, Matrix, Step, Workflow, known_platforms, runner_os


def _job(name: str = "test", platform: str = "ubuntu-latest", **kw) -> Job:
    return job(name, sh("Run", "make test"), runs_on=platform, **kw)


class TestWorkflowValidation:
    def test_duplicate_job_names_rejected(self):
        with pytest.raises(ValidationError) as exc:
            wf(_job("lint"), _job("lint"))
        assert exc.value.job == "lint"
        assert "duplicate job name" in str(exc.value)

    def test_unknown_platform_rejected(self):
        with pytest.raises(ValidationError) as exc:
            wf(_job("build", platform="solaris-11"))
        assert exc.value.job == "build"
        assert "solaris-11" in str(exc.value)

    def test_workflow_can_extend_platforms(self):
        w = wf(_job("build", platform="self-hosted"), platforms=["self-hosted"])
        assert "self-hosted" in w.platforms
        assert "ubuntu-latest" in w.platforms

    def test_env_extends_platforms(self, monkeypatch):
        monkeypatch.setattr(settings, "EXTRA_PLATFORMS", ["arm-runner"])
        assert "arm-runner" in known_platforms()
        w = Workflow(name="ci", jobs=(_job("build", platform="arm-runner"),))
        assert w.job("build").platform == "arm-runner"

    def test_jobs_iterate_in_declaration_order(self):
        w = wf(_job("c"), _job("a"), _job("b"))
        assert [j.name for j in w] == ["c", "a", "b"]
        assert len(w) == 3

    def test_job_lookup(self):
        w = wf(_job("a"))
        assert w.job("a").name == "a"
        with pytest.raises(KeyError):
            w.job("missing")

    def test_jobs_are_read_only(self):
        w = wf(_job("a"))
        assert isinstance(w.jobs, tuple)
        with pytest.raises(AttributeError):
            w.jobs = ()


class TestMatrixValidation:
    def test_empty_axis_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _job("cargo-test", matrix={"features": []})
        assert exc.value.job == "cargo-test"
        assert exc.value.axis == "features"

    def test_duplicate_axis_rejected(self):
        m = Matrix.of([("os", ["a"]), ("os", ["b"])])
        with pytest.raises(ValidationError) as exc:
            Job(name="t", platform="linux", steps=(sh("Run", "x"),), matrix=m)
        assert exc.value.axis == "os"
        assert "duplicate matrix axis" in str(exc.value)

    def test_blank_axis_name_rejected(self):
        with pytest.raises(ValidationError):
            _job(matrix={" ": ["x"]})

    def test_non_list_axis_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _job(matrix={"features": "--all-features"})
        assert exc.value.axis == "features"

    def test_non_scalar_value_rejected(self):
        with pytest.raises(ValidationError):
            _job(matrix={"target": [{"os": "linux"}]})

    def test_scalar_values_are_stringified(self):
        m = Matrix.of({"python": [3.11, 3], "debug": [True, False]})
        assert m.values("python") == ("3.11", "3")
        assert m.values("debug") == ("true", "false")

    def test_axis_order_kept(self):
        m = Matrix.of({"os": ["a"], "features": ["x"], "arch": ["y"]})
        assert m.names == ["os", "features", "arch"]


class TestJob:
    def test_step_needs_run_or_uses(self):
        with pytest.raises(ValidationError):
            Job(name="t", platform="linux", steps=(Step(name="nothing"),))
        with pytest.raises(ValidationError):
            Job(name="t", platform="linux", steps=(Step(name="both", run="x", uses="y"),))

    def test_env_values_are_strings(self):
        j = Job(name="t", platform="linux", steps=(uses("Checkout", "actions/checkout@v2"),), env={"N": 2})
        assert j.env == {"N": "2"}

    def test_fail_fast_defaults_on(self):
        assert _job().fail_fast is True
        assert _job(fail_fast=False).fail_fast is False


def test_declarations_are_hashable():
    a = _job("build", env={"MODE": "ci"})
    b = _job("build", env={"MODE": "ci"})
    step = Step(name="Run", run="make", env={"A": "1"}, with_={"x": "y"})
    assert hash(a) == hash(b)
    assert a == b
    assert {step, step} == {step}
    assert isinstance(hash(wf(a, on={"push": None})), int)


def test_runner_os_families():
    assert runner_os("ubuntu-latest") == "Linux"
    assert runner_os("windows-2022") == "Windows"
    assert runner_os("macos-14") == "macOS"
    assert runner_os("self-hosted") == "self-hosted"


def test_instance_label():
    inst = JobInstance(job="cargo-test-linux", platform="ubuntu-latest", assignment=(("features", "--all-features"),))
    assert inst.label == "cargo-test-linux (--all-features)"
    assert inst.matrix == {"features": "--all-features"}
    assert JobInstance(job="clippy", platform="ubuntu-latest").label == "clippy"
