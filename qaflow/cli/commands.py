"""CLI commands for qaflow."""

from __future__ import annotations

import hashlib
import importlib.util
import json
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

import click

from qaflow.cli.output import create_output
from qaflow.config import QAFlowConfig, load_config
from qaflow.core.builder import FlowBuilder
from qaflow.core.models import Flow, RunReport, SnapshotMode
from qaflow.errors import ConfigurationError, SnapshotError
from qaflow.reporters import REPORTERS, JSONReporter, TextReporter, exit_status
from qaflow.runner import FlowRegistry, FlowRunner
from qaflow.snapshots import JSONFileSnapshotStore

logger = logging.getLogger(__name__)

CONFIG_ERROR_EXIT_CODE = 2


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _fail_configuration(error: ConfigurationError) -> None:
    click.echo(f"Configuration error: {error}", err=True)
    sys.exit(CONFIG_ERROR_EXIT_CODE)


def _import_flow_file(path: Path) -> ModuleType:
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()[:8]
    module_name = f"qaflow_checklist_{path.stem}_{digest}"

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ConfigurationError(message=f"Cannot import flow file: {path}", path=str(path))

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except ConfigurationError:
        sys.modules.pop(module_name, None)
        raise
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise ConfigurationError(
            message=f"Cannot load flows from {path}: {type(e).__name__}: {e}",
            path=str(path),
            cause=e,
        ) from e
    return module


def _module_flows(module: ModuleType) -> list[Flow | FlowBuilder]:
    """Flows a checklist module exposes, in declaration order.

    Looked up as a ``registry`` FlowRegistry, then a ``flows`` list, then any
    module-level Flow or FlowBuilder.
    """
    registry = getattr(module, "registry", None)
    if isinstance(registry, FlowRegistry):
        return list(registry)

    flows = getattr(module, "flows", None)
    if flows is not None:
        if isinstance(flows, (Flow, FlowBuilder)):
            return [flows]
        if not isinstance(flows, (list, tuple)):
            raise ConfigurationError(
                message=f"'flows' in {module.__file__} must be a list of flows, got {type(flows).__name__}",
            )
        return list(flows)

    return [
        value
        for name, value in vars(module).items()
        if not name.startswith("_") and isinstance(value, (Flow, FlowBuilder))
    ]


def _flow_files(paths: tuple[str, ...]) -> list[Path]:
    files: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(sorted(p for p in path.glob("*.py") if not p.name.startswith("_")))
        else:
            files.append(path)
    return files


def load_flows(paths: tuple[str, ...], on_duplicate: str = "forbid") -> FlowRegistry:
    """Import checklist files and collect their flows into one registry.

    Raises:
        ConfigurationError: If a file cannot be imported or no flow is found.
    """
    registry = FlowRegistry(on_duplicate=on_duplicate)

    for path in _flow_files(paths):
        module = _import_flow_file(path)
        found = _module_flows(module)
        if not found:
            logger.warning(f"No flows found in {path}")
        for flow in found:
            registry.register(flow)

    if len(registry) == 0:
        raise ConfigurationError(
            message=f"No flows found in: {', '.join(paths)}",
            paths=list(paths),
        )
    return registry


def _save_reports(report: RunReport, config: QAFlowConfig) -> list[Path]:
    saved: list[Path] = []
    if config.report_dir is None:
        return saved

    for fmt in config.report_formats:
        reporter_cls = REPORTERS[fmt]
        reporter = reporter_cls(verbose=config.verbose) if reporter_cls is TextReporter else reporter_cls()
        saved.append(reporter.save(report, config.report_dir / f"qaflow{reporter.file_extension}"))
    return saved


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option(
    "--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Path to config file"
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """qaflow - snapshot-verified flow checklists."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose

    setup_logging(verbose)


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--update", "-u", is_flag=True, help="Overwrite snapshots with current values")
@click.option("--snapshot-dir", type=click.Path(file_okay=False), default=None, help="Snapshot directory")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.option("--report-dir", type=click.Path(file_okay=False), default=None, help="Write report files here")
@click.option("--flow", "flow_names", multiple=True, help="Only run the named flow (repeatable)")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def run(
    ctx: click.Context,
    paths: tuple[str, ...],
    update: bool,
    snapshot_dir: str | None,
    output_format: str,
    report_dir: str | None,
    flow_names: tuple[str, ...],
    verbose: bool,
) -> None:
    """Run the flows declared in PATHS (files or directories).

    Exits 0 when every flow passed, 1 when any flow failed and 2 on a
    configuration error.
    """
    verbose = verbose or ctx.obj["verbose"]
    if verbose and not ctx.obj["verbose"]:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(
            ctx.obj["config_path"],
            mode=SnapshotMode.UPDATE if update else None,
            snapshot_dir=snapshot_dir,
            report_dir=report_dir,
            verbose=True if verbose else None,
        )
        registry = load_flows(paths, on_duplicate=config.on_duplicate_flow)
        output = create_output(verbose=config.verbose) if output_format == "text" else None
        runner = FlowRunner.from_config(config, output=output)
        report = runner.run(registry, only=flow_names or None)
    except ConfigurationError as e:
        _fail_configuration(e)
        return

    if output_format == "json":
        click.echo(JSONReporter().generate(report))
    else:
        output.run_summary(report)
        click.echo(TextReporter(verbose=config.verbose).generate(report), nl=False)

    for path in _save_reports(report, config):
        click.echo(f"Report written: {path}", err=True)

    sys.exit(exit_status(report))


@cli.group()
@click.option("--snapshot-dir", type=click.Path(file_okay=False), default=None, help="Snapshot directory")
@click.pass_context
def snapshots(ctx: click.Context, snapshot_dir: str | None) -> None:
    """Inspect and manage recorded snapshots."""
    try:
        config = load_config(ctx.obj["config_path"], snapshot_dir=snapshot_dir)
        ctx.obj["store"] = JSONFileSnapshotStore(config.snapshot_dir)
    except ConfigurationError as e:
        _fail_configuration(e)


def _store_call(fn: Any, *args: Any) -> Any:
    try:
        return fn(*args)
    except SnapshotError as e:
        click.echo(f"Snapshot store error: {e}", err=True)
        sys.exit(1)


@snapshots.command("list")
@click.argument("flow_name", required=False)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.pass_context
def list_snapshots(ctx: click.Context, flow_name: str | None, output_format: str) -> None:
    """List snapshot keys, optionally only those of FLOW_NAME."""
    store: JSONFileSnapshotStore = ctx.obj["store"]
    entries = _store_call(store.entries)
    if flow_name:
        prefix = f"{flow_name} > "
        entries = [e for e in entries if e.key.startswith(prefix)]

    if output_format == "json":
        click.echo(json.dumps([e.to_dict() for e in entries], indent=2))
        return

    if not entries:
        click.echo(f"No snapshots found in {store.directory}")
        return

    click.echo(f"Found {len(entries)} snapshot(s) in {store.directory}:\n")
    for entry in entries:
        recorded = f" (recorded {entry.recorded_at.isoformat()})" if entry.recorded_at else ""
        click.echo(f"  • {entry.key}{recorded}")


@snapshots.command("show")
@click.argument("key")
@click.pass_context
def show_snapshot(ctx: click.Context, key: str) -> None:
    """Print the value stored under KEY."""
    store: JSONFileSnapshotStore = ctx.obj["store"]
    if not _store_call(store.exists, key):
        click.echo(f"Snapshot not found: {key}", err=True)
        sys.exit(1)

    click.echo(json.dumps(_store_call(store.get, key), indent=2, sort_keys=True))


@snapshots.command("delete")
@click.argument("key")
@click.pass_context
def delete_snapshot(ctx: click.Context, key: str) -> None:
    """Delete the snapshot stored under KEY; it is re-recorded on the next run."""
    store: JSONFileSnapshotStore = ctx.obj["store"]
    if not _store_call(store.delete, key):
        click.echo(f"Snapshot not found: {key}", err=True)
        sys.exit(1)

    click.echo(f"Deleted snapshot: {key}")


@snapshots.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear_snapshots(ctx: click.Context, yes: bool) -> None:
    """Delete every snapshot in the snapshot directory."""
    store: JSONFileSnapshotStore = ctx.obj["store"]
    if not yes:
        click.confirm(f"Delete all snapshots in {store.directory}?", abort=True)

    removed = _store_call(store.clear)
    click.echo(f"Deleted {removed} snapshot(s)")


__all__ = ["cli", "load_flows", "setup_logging"]
