"""Command-line interface for fitpick."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from fitpick import __version__
from fitpick.config import (
    CACHE_DB_FILE,
    ProjectConfig,
    find_project_root,
    get_fitpick_dir,
    load_config,
    save_config,
    set_config_value,
)
from fitpick.exceptions import ConfigError, FitPickError
from fitpick.ui.console import Console

console = Console()


def _get_project_root(path: str | None = None) -> Path:
    """Find the project root or error."""
    if path:
        root = Path(path).resolve()
        if not root.exists():
            console.error(f"Path does not exist: {path}")
            sys.exit(1)
        return root

    root = find_project_root()
    if root is None:
        console.error(
            "No fitpick project found. Run 'fitpick init' first, "
            "or specify a path with --path."
        )
        sys.exit(1)
    return root


def _load_config(root: Path) -> ProjectConfig:
    try:
        return load_config(root)
    except ConfigError as e:
        console.error(str(e))
        sys.exit(1)


def _load_dataset(root: Path, config: ProjectConfig, refresh: bool = False, store=None):
    """Load both unit collections or error."""
    from fitpick.data.dataset import Dataset

    try:
        return Dataset.load(config, root, refresh=refresh, store=store)
    except FitPickError as e:
        console.error(str(e))
        sys.exit(1)


def _setup_logging(verbose: bool) -> None:
    if not verbose:
        return
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console.console, show_path=False)],
    )


@click.group()
@click.version_option(version=__version__, prog_name="fitpick")
@click.option("--verbose", "-v", is_flag=True, help="Show search logs.")
def main(verbose: bool):
    """fitpick - pick 3 or 4 units whose total size fits an allowance."""
    _setup_logging(verbose)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--planned", default=None, help="Planned units file (.xlsx or .json).")
@click.option("--ready", default=None, help="Ready units file (.xlsx or .json).")
def init(path: str | None, planned: str | None, ready: str | None):
    """Initialize a fitpick project and check that its data loads."""
    root = Path(path or ".").resolve()
    if not root.exists():
        console.error(f"Path does not exist: {root}")
        sys.exit(1)

    console.banner()
    console.info(f"Initializing fitpick for: {root}")

    config = _load_config(root)
    config.name = root.name
    config.root_path = str(root)
    if planned:
        config.data.planned_path = planned
    if ready:
        config.data.ready_path = ready

    save_config(root, config)
    console.success("Configuration saved")

    from fitpick.data.store import RowStore

    store = RowStore(get_fitpick_dir(root) / CACHE_DB_FILE)
    try:
        dataset = _load_dataset(root, config, refresh=True, store=store)
        cached = store.cached_sources()
    finally:
        store.close()

    console.show_stats(dataset.stats)
    console.show_cache(cached)
    console.success("Row cache written to .fitpick/")


@main.command()
@click.argument("target", type=float)
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--top-k", "-k", default=None, type=int, help="Number of combinations to return.")
@click.option(
    "--source", "-s",
    type=click.Choice(["A", "B", "AB"], case_sensitive=False),
    default=None,
    help="A = planned only, B = ready only, AB = both.",
)
@click.option("--min-size", default=None, type=float, help="Ignore units smaller than this.")
@click.option("--max-size", default=None, type=float, help="Ignore units larger than this.")
@click.option("--community", "-c", multiple=True, help="Only ready units from these communities.")
@click.option("--bonus", default=None, type=float, help="Extra allowance added to the target.")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@click.option("--xlsx", "xlsx_path", default=None, help="Also write results to an .xlsx file.")
@click.option("--csv", "csv_path", default=None, help="Also write results to a .csv file.")
@click.option("--refresh", is_flag=True, help="Re-parse source files, ignoring the row cache.")
def search(
    target: float, path: str | None, top_k: int | None, source: str | None,
    min_size: float | None, max_size: float | None, community: tuple[str, ...],
    bonus: float | None, as_json: bool, xlsx_path: str | None, csv_path: str | None,
    refresh: bool,
):
    """Find the combinations closest to TARGET without exceeding it.

    Examples:

        fitpick search 318.64

        fitpick search 318.64 --top-k 5 --source AB --min-size 60 --max-size 140

        fitpick search 240 --community "East Garden" --xlsx results.xlsx
    """
    from fitpick.data.export import export_csv, export_xlsx
    from fitpick.service import resolve_request, solve

    root = _get_project_root(path)
    config = _load_config(root)

    try:
        request = resolve_request(
            config,
            target=target,
            top_k=top_k,
            source=source,
            min_size=min_size,
            max_size=max_size,
            communities=community,
            bonus=bonus,
        )
        dataset = _load_dataset(root, config, refresh=refresh)
        results = solve(dataset, request, config)
    except FitPickError as e:
        console.error(str(e))
        sys.exit(1)

    if as_json:
        click.echo(
            json.dumps([r.model_dump() for r in results], indent=2, ensure_ascii=False)
        )
    elif results:
        console.show_results(results, request.effective_target)
    else:
        console.warning(f"No valid combination for target {request.effective_target:g}")

    try:
        if xlsx_path:
            export_xlsx(results, xlsx_path)
            console.success(f"Exported {len(results)} result(s) to {xlsx_path}")
        if csv_path:
            export_csv(results, csv_path)
            console.success(f"Exported {len(results)} result(s) to {csv_path}")
    except FitPickError as e:
        console.error(str(e))
        sys.exit(1)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
def communities(path: str | None):
    """List the communities of the ready collection."""
    root = _get_project_root(path)
    config = _load_config(root)
    dataset = _load_dataset(root, config)

    names = dataset.communities()
    if not names:
        console.warning("No community column found in the ready collection")
        return
    for name in names:
        click.echo(name)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--host", default=None, help="Interface to bind (default from config).")
@click.option("--port", default=None, type=int, help="Port to listen on (default from config).")
@click.option("--workers", "-w", default=None, type=int, help="Search worker processes.")
def serve(path: str | None, host: str | None, port: int | None, workers: int | None):
    """Start the HTTP service.

    Each search request runs on a fixed-size worker pool with a bounded
    queue; requests beyond the queue are refused with 503.
    """
    from fitpick.server import create_app
    from fitpick.service import SearchDispatcher

    root = _get_project_root(path)
    config = _load_config(root)
    if workers:
        config.server.workers = workers
    dataset = _load_dataset(root, config)

    dispatcher = SearchDispatcher.from_config(config.server)
    app = create_app(config, dataset, dispatcher)

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    console.info(f"Serving on http://{bind_host}:{bind_port} with {dispatcher.workers} worker(s)")
    try:
        app.run(host=bind_host, port=bind_port, threaded=True)
    finally:
        dispatcher.shutdown()


# =========================================================================
# Config Management
# =========================================================================

@main.command("config")
@click.argument("action", type=click.Choice(["set", "get", "show"]))
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--path", "-p", default=None, help="Path to the project root.")
def config_cmd(action: str, key: str | None, value: str | None, path: str | None):
    """Manage fitpick configuration."""
    root = _get_project_root(path)
    config = _load_config(root)

    if action == "show":
        console.console.print_json(json.dumps(config.model_dump(), indent=2))
    elif action == "get":
        if not key:
            console.error("Usage: fitpick config get <key>")
            sys.exit(1)
        data = config.model_dump()
        for part in key.split("."):
            if isinstance(data, dict) and part in data:
                data = data[part]
            else:
                console.error(f"Unknown key: {key}")
                sys.exit(1)
        console.console.print(f"{key} = {data}")
    elif action == "set":
        if not key or value is None:
            console.error("Usage: fitpick config set <key> <value>")
            sys.exit(1)
        try:
            # Try to parse as JSON for non-string values
            try:
                parsed_value = json.loads(value)
            except json.JSONDecodeError:
                parsed_value = value

            config = set_config_value(config, key, parsed_value)
            save_config(root, config)
            console.success(f"Set {key} = {parsed_value}")
        except KeyError:
            console.error(f"Unknown config key: {key}")
            sys.exit(1)
        except ConfigError as e:
            console.error(str(e))
            sys.exit(1)


if __name__ == "__main__":
    main()
