"""
Shared pytest fixtures for matrixci tests.

The reference workflow is the Rust "Cargo tests" Actions file: clippy,
format, and three per-OS cargo test jobs with a two-value features matrix.
"""

import textwrap
from pathlib import Path

import pytest

from matrixci.dsl import job, sh, uses
from matrixci.loader import load_yaml_workflow

CARGO_TESTS_YAML = textwrap.dedent(r"""
    name: Cargo tests
    on:
      push:
        branches:
          - main
      pull_request:
    jobs:
      clippy:
        runs-on: ubuntu-latest
        steps:
          - uses: actions/checkout@v1
          - uses: actions-rs/toolchain@v1
            with:
              toolchain: stable
              components: clippy
              override: true
          - uses: actions-rs/clippy-check@v1
            with:
              token: ${{ secrets.GITHUB_TOKEN }}
              args: --all-features

      format:
        runs-on: ubuntu-latest
        steps:
          - uses: actions/checkout@v2
          - uses: mbrobbel/rustfmt-check@master
            with:
              token: ${{ secrets.GITHUB_TOKEN }}

      cargo-test-linux:
        runs-on: ubuntu-latest
        strategy:
          fail-fast: false
          matrix:
            features:
              - "--all-features"
              - "--no-default-features --lib"
        env:
          RUSTFLAGS: "-Dwarnings"
        steps:
          - uses: actions/checkout@v2
          - uses: actions/cache@v2
            with:
              path: |
                ~/.cargo/registry
                ~/.cargo/git
                target
              key: ${{ runner.os }}-cargo-${{ matrix.features }}
          - name: Run tests
            run: cargo test ${{matrix.features}}

      cargo-test-windows:
        runs-on: windows-latest
        strategy:
          fail-fast: false
          matrix:
            features:
              - "--all-features"
              - "--no-default-features --lib"
        steps:
          - uses: actions/checkout@v2
          - name: Setup Cargo build cache
            uses: actions/cache@v2
            with:
              path: |
                C:\Users\runneradmin\.cargo\registry
                C:\Users\runneradmin\.cargo\git
                target
              key: ${{ runner.os }}-cargo
          - name: Run normal tests
            shell: powershell
            run: cargo test ${{matrix.features}}

      cargo-test-macos:
        runs-on: macos-latest
        strategy:
          fail-fast: false
          matrix:
            features:
              - "--all-features"
              - "--no-default-features --lib"
        steps:
          - uses: actions/checkout@v2
          - name: Run tests
            run: cargo test ${{matrix.features}}
""")


@pytest.fixture()
def write_yaml(tmp_path: Path):
    """Write a workflow YAML string to a temp file and return its path."""

    def _write(content: str, name: str = "workflow.yml") -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def cargo_yaml(write_yaml) -> Path:
    return write_yaml(CARGO_TESTS_YAML, "test.yml")


@pytest.fixture()
def cargo_workflow(cargo_yaml: Path):
    return load_yaml_workflow(cargo_yaml)


@pytest.fixture()
def cargo_test_linux():
    return job(
        "cargo-test-linux",
        uses("Checkout", "actions/checkout@v2"),
        sh("Run tests", "cargo test ${{ matrix.features }}"),
        runs_on="ubuntu-latest",
        matrix={"features": ["--all-features", "--no-default-features --lib"]},
        env={"RUSTFLAGS": "-Dwarnings"},
        fail_fast=False,
        cache_paths=["~/.cargo/registry", "~/.cargo/git", "target"],
        cache_key="${{ runner.os }}-cargo-${{ matrix.features }}",
    )
