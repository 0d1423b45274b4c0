"""CLI entry point: the agentcheck command"""

import asyncio
import signal
import sys

import click
from rich.console import Console
from rich.table import Table

from agentcheck import __version__
from agentcheck.core.cancellation import CancellationToken
from agentcheck.core.config import load_config
from agentcheck.core.exceptions import AgentCheckError
from agentcheck.core.logging import get_logger, setup_logging
from agentcheck.core.suites import find_suite, load_suite
from agentcheck.report.json_report import generate_json_report
from agentcheck.runner.coordinator import MultiTargetCoordinator
from agentcheck.schema.result import Run
from agentcheck.store.json_store import JsonRunStore

logger = get_logger(__name__)
console = Console()


@click.group()
@click.option("--config", "config_path", default="./agentcheck.yaml", help="Path to the config file")
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, config_path: str, verbose: bool):
    """agentcheck: regression tests for conversational agents"""
    setup_logging(verbose=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("suite")
@click.option("--target", "target_names", multiple=True, help="Target to run against (repeatable, default: all)")
@click.option("--output-dir", default=None, help="Report output directory")
@click.option("--delay-ms", default=None, type=int, help="Delay between test cases in milliseconds")
@click.option("--dry-run", is_flag=True, help="Show what would run without executing")
@click.pass_context
def run(ctx, suite: str, target_names: tuple[str, ...], output_dir: str | None, delay_ms: int | None, dry_run: bool):
    """Run SUITE (file path or suite name) against one or more targets"""
    try:
        config = load_config(ctx.obj["config_path"])
        suite_spec = find_suite(suite, config.suites_dir)
    except AgentCheckError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)

    names = list(target_names) or list(config.targets)
    unknown = [name for name in names if name not in config.targets]
    if unknown:
        console.print(f"[red]unknown target(s): {', '.join(unknown)}[/red]")
        sys.exit(2)
    if not names:
        console.print("[red]no targets configured[/red]")
        sys.exit(2)
    targets = [config.targets[name] for name in names]

    active = suite_spec.active_cases
    console.print(f"\n[bold]Suite: {suite_spec.name}[/bold]")
    console.print(f"  targets: {', '.join(names)}  active cases: {len(active)}/{len(suite_spec.cases)}")

    if dry_run:
        for case in active:
            console.print(f"  - {case.id}: {case.name} ({len(case.user_input)} turn(s))")
        console.print(f"Dry run: would execute {len(active)} test case(s) against {len(targets)} target(s)")
        return

    execution = config.execution
    if delay_ms is not None:
        execution = execution.model_copy(update={"delay_between_tests_ms": delay_ms})
    store = JsonRunStore(config.report.store_dir) if config.report.store_dir else None
    coordinator = MultiTargetCoordinator(execution, config.judge, store=store)

    async def _run_all() -> list[Run]:
        cancel = CancellationToken()
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, cancel.cancel, "interrupted by user")
        except (NotImplementedError, RuntimeError):
            pass
        try:
            return await coordinator.execute(suite_spec, targets, cancel)
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except (NotImplementedError, RuntimeError):
                pass

    runs = asyncio.run(_run_all())

    report_dir = output_dir or config.report.output_dir
    exit_code = 0 if len(runs) == len(targets) else 1
    for run_record in runs:
        _print_summary(run_record)
        report_path = generate_json_report(run_record, output_dir=report_dir)
        console.print(f"  report: {report_path}")
        if run_record.failed > 0 or run_record.cancelled:
            exit_code = 1
        if any(r.verdict == "error" for r in run_record.results):
            exit_code = 1

    sys.exit(exit_code)


@cli.command()
@click.argument("suite_files", nargs=-1, required=True)
def validate(suite_files: tuple[str, ...]):
    """Validate suite files without running them"""
    total_cases = 0
    valid_count = 0

    for suite_file in suite_files:
        try:
            suite_spec = load_suite(suite_file)
        except AgentCheckError as e:
            console.print(f"  [red]FAIL[/red] {suite_file}: {e}")
            continue
        case_count = len(suite_spec.cases)
        total_cases += case_count
        valid_count += 1
        console.print(f"  [green]OK[/green] {suite_file} ({case_count} cases)")

    console.print(f"\n{valid_count} valid suite(s), {total_cases} test case(s).")
    if valid_count < len(suite_files):
        sys.exit(2)


@cli.command()
@click.pass_context
def targets(ctx):
    """List configured targets"""
    try:
        config = load_config(ctx.obj["config_path"])
    except AgentCheckError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)

    table = Table(title="Targets")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Environment")
    table.add_column("Auth")
    table.add_column("Policy")
    table.add_column("Judge model")
    for name, target in config.targets.items():
        transport = target.transport
        judge = target.judge or config.judge
        table.add_row(
            name,
            target.environment,
            transport.auth_mode,
            f"{transport.reply_timeout_seconds:.0f}s, {transport.max_retries}x, {transport.backoff_seconds:.0f}s",
            judge.model,
        )
    console.print(table)


def _print_summary(run_record: Run):
    """Print a per-run summary table"""
    table = Table(title=f"Results: {run_record.suite_name} @ {run_record.target_name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Total", str(run_record.total))
    table.add_row("Passed", str(run_record.passed))
    table.add_row("Failed", str(run_record.failed))
    table.add_row("Skipped", str(run_record.skipped))
    table.add_row("Pass rate", f"{run_record.pass_rate:.1%}")
    table.add_row("Avg latency", f"{run_record.average_latency_ms:.0f}ms")
    table.add_row("Median / p95", f"{run_record.median_latency_ms:.0f}ms / {run_record.p95_latency_ms:.0f}ms")
    if run_record.cancelled:
        table.add_row("Status", "[yellow]cancelled[/yellow]")

    console.print(table)


def main():
    cli()


if __name__ == "__main__":
    main()
