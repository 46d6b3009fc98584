# cli.py
from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from matrixci import settings
from matrixci.cache import resolve_workflow_keys
from matrixci.errors import ValidationError, WorkflowLoadError
from matrixci.expand import expand_workflow, instance_count
from matrixci.loader import load_workflow
from matrixci.model import Workflow
from matrixci.plan import plan_workflow
from matrixci.ui.console import Console, configure_logging, get_console, set_console


def find_workflow_files(root: Path = Path(".")) -> list[Path]:
    """
    Find candidate workflow files.

    Looks for Actions YAML under the workflow dir (MATRIXCI_WORKFLOW_DIR,
    default .github/workflows) and python workflows named *_workflow.py in
    the current directory.
    """
    workflow_files: list[Path] = []

    wf_dir = root / settings.DEFAULT_WORKFLOW_DIR
    if wf_dir.is_dir():
        workflow_files.extend(wf_dir.glob("*.yml"))
        workflow_files.extend(wf_dir.glob("*.yaml"))

    workflow_files.extend(root.glob("*_workflow.py"))
    return sorted(workflow_files)


def discover_workflow(workflow_arg: str | None) -> Path:
    """
    Discover workflow file from argument or default.

    Raises:
        SystemExit: If workflow cannot be found or multiple workflows exist
    """
    console = get_console()

    if workflow_arg:
        workflow_path = Path(workflow_arg)
        if not workflow_path.exists():
            console.print_error(
                "Workflow file not found",
                f"Could not find workflow file: {workflow_arg}",
                suggestion="Specify an existing file:\n  matrixci plan --workflow .github/workflows/test.yml",
            )
            sys.exit(1)
        return workflow_path

    workflow_files = find_workflow_files()

    if len(workflow_files) == 0:
        console.print_error(
            "No workflow file found",
            "Could not find any workflow files.",
            details=[
                "Looked for:",
                f"  {settings.DEFAULT_WORKFLOW_DIR}/*.yml",
                f"  {settings.DEFAULT_WORKFLOW_DIR}/*.yaml",
                "  *_workflow.py",
            ],
            suggestion="Specify a workflow explicitly:\n  matrixci plan --workflow my_workflow.py",
        )
        sys.exit(1)

    if len(workflow_files) > 1:
        file_list = "\n".join(f"  {f}" for f in workflow_files)
        console.print_error(
            "Multiple workflow files found",
            "Found multiple workflow files. Please specify which one to use:",
            details=[file_list],
            suggestion=f"Specify a workflow explicitly:\n  matrixci plan --workflow {workflow_files[0]}",
        )
        sys.exit(1)

    return workflow_files[0]


def _load(workflow_arg: str | None, platforms: tuple[str, ...]) -> tuple[Path, Workflow]:
    console = get_console()
    workflow_path = discover_workflow(workflow_arg)
    console.print_debug(f"loading {workflow_path} (extra platforms: {list(platforms) or 'none'})")

    try:
        return workflow_path, load_workflow(workflow_path, platforms=platforms)
    except WorkflowLoadError as e:
        console.print_error(
            "Failed to load workflow",
            f"Could not load workflow from {e.path}",
            details=[e.message, *e.details],
        )
    except ValidationError as e:
        console.print_error(
            "Invalid workflow",
            str(e),
            suggestion="Fix the declaration and try again.",
        )
    except Exception as e:
        console.print_exception(e)
    sys.exit(1)


def _workflow_option(f):
    f = click.option(
        "--platform",
        "platforms",
        multiple=True,
        help="Extra runner label to accept (repeatable)",
    )(f)
    return click.option(
        "--workflow",
        default=None,
        help=f"Workflow file (.yml/.yaml/.py); discovered under {settings.DEFAULT_WORKFLOW_DIR} if omitted",
    )(f)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """matrixci: expand CI job matrices and resolve per-instance cache keys."""
    console = Console(debug=debug)
    set_console(console)
    configure_logging(debug)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@_workflow_option
@click.pass_context
def validate(ctx, workflow, platforms):
    """Load and validate a workflow."""
    console = get_console()
    path, wf = _load(workflow, platforms)
    total = sum(instance_count(j) for j in wf)
    console.print_info(f"OK: {path} ({len(wf)} job(s), {total} instance(s))")


@cli.command()
@_workflow_option
@click.option("--job", "job_name", default=None, help="Only show this job")
@click.pass_context
def expand(ctx, workflow, platforms, job_name):
    """List the job instances the matrix expands into."""
    console = get_console()
    _path, wf = _load(workflow, platforms)

    expanded = expand_workflow(wf)
    if job_name is not None:
        if job_name not in expanded:
            console.print_error("Unknown job", f"No job named {job_name!r}", details=list(expanded))
            sys.exit(1)
        expanded = {job_name: expanded[job_name]}

    for name, instances in expanded.items():
        job = wf.job(name)
        console.print_job(name, job.platform, job.fail_fast)
        for inst in instances:
            console.print_info(f"  {inst.label}")


@cli.command()
@_workflow_option
@click.option("--prefix", default=None, help="Cache key namespace (defaults to MATRIXCI_CACHE_PREFIX)")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print keys as JSON")
@click.pass_context
def keys(ctx, workflow, platforms, prefix, as_json):
    """Print the cache key of every job instance."""
    console = get_console()
    _path, wf = _load(workflow, platforms)

    resolved = resolve_workflow_keys(wf, prefix=prefix if prefix is not None else settings.CACHE_PREFIX)

    if as_json:
        out = {
            name: [
                {"label": inst.label, "key": key.value, "digest": key.digest, "rendered_key": key.rendered}
                for inst, key in pairs
            ]
            for name, pairs in resolved.items()
        }
        click.echo(json.dumps(out, indent=2, ensure_ascii=False))
        return

    for name, pairs in resolved.items():
        job = wf.job(name)
        console.print_job(name, job.platform, job.fail_fast)
        for inst, key in pairs:
            console.print_instance(inst.label, key.value, key.rendered)


@cli.command()
@_workflow_option
@click.option("--prefix", default=None, help="Cache key namespace (defaults to MATRIXCI_CACHE_PREFIX)")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the plan as JSON")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), default=None, help="Write the JSON plan to a file")
@click.pass_context
def plan(ctx, workflow, platforms, prefix, as_json, output):
    """Expand, resolve cache keys and render steps for every instance."""
    console = get_console()
    path, wf = _load(workflow, platforms)

    the_plan = plan_workflow(wf, prefix=prefix)

    if output:
        Path(output).write_text(json.dumps(the_plan.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        console.print_info(f"Wrote plan for {len(the_plan.instances)} instance(s) to {output}")
        return

    if as_json:
        click.echo(json.dumps(the_plan.to_dict(), indent=2, ensure_ascii=False))
        return

    console.print_workflow(wf.name, str(path), len(wf), len(the_plan.instances))
    for name, planned in the_plan.jobs.items():
        job = wf.job(name)
        console.print_job(name, job.platform, job.fail_fast)
        for p in planned:
            console.print_instance(p.instance.label, p.cache_key.value, p.cache_key.rendered)
            for step in p.steps:
                console.print_step(step.name, step.run if step.run is not None else f"uses {step.uses}")


def main() -> None:
    try:
        cli()
    except KeyboardInterrupt:
        get_console().print_info("\nInterrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
