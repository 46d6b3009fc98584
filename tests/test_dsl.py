"""DSL helpers and the builder."""

from __future__ import annotations

import pytest

from matrixci.dsl import build, job, matrix, sh, uses, wf
from matrixci.errors import ValidationError
from matrixci.model import CacheSpec, Matrix, Workflow


def test_sh_and_uses():
    s = sh("Run tests", "cargo test", shell="powershell")
    assert (s.run, s.uses, s.shell) == ("cargo test", None, "powershell")

    u = uses("Toolchain", "actions-rs/toolchain@v1", toolchain="stable", override=True)
    assert u.uses == "actions-rs/toolchain@v1"
    assert u.with_ == {"toolchain": "stable", "override": "true"}


def test_job_requires_steps():
    with pytest.raises(ValidationError):
        job("empty", runs_on="linux")


def test_job_default_cwd_only_for_shell_steps():
    j = job("t", sh("a", "x"), sh("b", "y", cwd="sub"), uses("c", "actions/checkout@v2"), runs_on="linux", cwd="app")
    assert [s.cwd for s in j.steps] == ["app", "sub", None]


def test_job_cache_spec():
    j = job("t", sh("a", "x"), runs_on="linux", cache_paths=["target"], cache_key="k")
    assert j.cache == CacheSpec(paths=("target",), key="k")
    assert job("t", sh("a", "x"), runs_on="linux").cache is None


def test_matrix_helper_keeps_order():
    m = matrix({"rust-version": ["stable", "beta"]}, os=["linux", "macos"])
    assert isinstance(m, Matrix)
    assert m.names == ["rust-version", "os"]


def test_builder():
    j = (
        build("cargo-test-windows")
        .runs_on("windows-latest")
        .use_action("Checkout", "actions/checkout@v2")
        .define_step("Run normal tests", "cargo test ${{ matrix.features }}", shell="powershell")
        .with_axis("features", "--all-features", "--no-default-features --lib")
        .with_env(RUSTFLAGS="-Dwarnings")
        .fail_fast(False)
        .cache("target", key="${{ runner.os }}-cargo")
        .build()
    )
    assert j.platform == "windows-latest"
    assert j.matrix.values("features") == ("--all-features", "--no-default-features --lib")
    assert j.fail_fast is False
    assert j.cache.key == "${{ runner.os }}-cargo"
    assert len(j.steps) == 2


def test_builder_requires_platform_and_steps():
    with pytest.raises(ValidationError):
        build("t").define_step("a", "x").build()
    with pytest.raises(ValidationError):
        build("t").runs_on("linux").build()


def test_builder_reports_duplicate_axis():
    with pytest.raises(ValidationError) as exc:
        build("t").runs_on("linux").define_step("a", "x").with_axis("os", "a").with_axis("os", "b").build()
    assert exc.value.axis == "os"


def test_wf_builds_validated_workflow():
    w = wf(job("a", sh("a", "x"), runs_on="linux"), name="ci", on={"push": None})
    assert isinstance(w, Workflow)
    assert w.name == "ci"
    assert w.triggers == {"push": None}
