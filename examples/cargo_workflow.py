# cargo_workflow.py
# The cargo-tests.yml workflow written with the python DSL:
#   matrixci plan --workflow examples/cargo_workflow.py
from __future__ import annotations

from matrixci.dsl import wf, job, sh, uses

FEATURES = ["--all-features", "--no-default-features --lib"]


def toolchain(*components: str):
    extra = {"components": ",".join(components)} if components else {}
    return uses("Install toolchain", "actions-rs/toolchain@v1", toolchain="stable", override="true", **extra)


def workflow():
    return wf(
        job(
            "clippy",
            uses("Checkout", "actions/checkout@v1"),
            toolchain("clippy"),
            uses("Clippy", "actions-rs/clippy-check@v1", token="${{ secrets.GITHUB_TOKEN }}", args="--all-features"),
            runs_on="ubuntu-latest",
        ),
        job(
            "format",
            uses("Checkout", "actions/checkout@v2"),
            toolchain("rustfmt"),
            uses("Rustfmt", "mbrobbel/rustfmt-check@master", token="${{ secrets.GITHUB_TOKEN }}"),
            runs_on="ubuntu-latest",
        ),
        job(
            "cargo-test-linux",
            uses("Checkout", "actions/checkout@v2"),
            toolchain(),
            sh("Run tests", "cargo test ${{ matrix.features }}"),
            runs_on="ubuntu-latest",
            matrix={"features": FEATURES},
            env={"RUSTFLAGS": "-Dwarnings"},
            fail_fast=False,
            cache_paths=["~/.cargo/registry", "~/.cargo/git", "target"],
            cache_key="${{ runner.os }}-cargo-${{ matrix.features }}",
        ),
        job(
            "cargo-test-windows",
            uses("Checkout", "actions/checkout@v2"),
            toolchain(),
            sh("Run normal tests", "cargo test ${{ matrix.features }}", shell="powershell"),
            runs_on="windows-latest",
            matrix={"features": FEATURES},
            fail_fast=False,
            cache_paths=[
                r"C:\Users\runneradmin\.cargo\registry",
                r"C:\Users\runneradmin\.cargo\git",
                "target",
            ],
            cache_key="${{ runner.os }}-cargo",
        ),
        job(
            "cargo-test-macos",
            uses("Checkout", "actions/checkout@v2"),
            toolchain(),
            sh("Run tests", "cargo test ${{ matrix.features }}"),
            runs_on="macos-latest",
            matrix={"features": FEATURES},
            fail_fast=False,
        ),
        name="Cargo tests",
        on={"push": {"branches": ["main"]}, "pull_request": None},
    )
