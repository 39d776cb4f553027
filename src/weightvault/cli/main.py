"""
Main CLI entry point for weightvault.
"""

import logging
from datetime import timedelta
from typing import Optional

import click

from weightvault.cache.model_cache import ModelCache, format_bytes
from weightvault.core import Config
from weightvault.core.contracts import ProgressEvent
from weightvault.core.errors import WeightVaultError
from weightvault.fetch.pipeline import ChunkedAssetStore
from weightvault.storage.kv_store import SqliteStore


def describe_event(event: ProgressEvent) -> Optional[str]:
    """
    One-line description of a progress event for terminal output.

    Download events are not described individually (there is one per network
    batch); chunk, completion, error and info events are.
    """
    if event.type == "chunkStored":
        return f"  chunk {event.chunk_index} stored ({format_bytes(event.bytes_stored)})"
    if event.type == "complete":
        return f"Complete: {event.asset_id} ({format_bytes(event.total_bytes)})"
    if event.type == "error":
        return f"Error: {event.asset_id}: {event.error}"
    if event.type == "info":
        return f"{event.asset_id}: {event.msg}"
    return None


def echo_progress(event: ProgressEvent) -> None:
    message = describe_event(event)
    if message is not None:
        click.echo(message)


def _config(ctx: click.Context) -> Config:
    return ctx.obj["config"]


def _open_assets(ctx: click.Context) -> ChunkedAssetStore:
    config = _config(ctx)
    return ChunkedAssetStore(SqliteStore(config.db_path), config)


def _open_cache(ctx: click.Context) -> ModelCache:
    config = _config(ctx)
    return ModelCache(SqliteStore(config.db_path), config)


@click.group()
@click.option("--db", "db_path", type=click.Path(dir_okay=False), default=None, help="Store database path")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, db_path, verbose):
    """weightvault - Chunked fetch-and-store for model weight files."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = Config.from_env(db_path=db_path)


@cli.command()
@click.argument("url")
@click.argument("asset_id")
@click.option("--buffered", is_flag=True, help="Download whole asset into memory before storing")
@click.option("--chunk-size", type=int, default=None, help="Chunk size in bytes")
@click.pass_context
def fetch(ctx, url, asset_id, buffered, chunk_size):
    """Download URL and store it as ASSET_ID."""
    if chunk_size is not None:
        ctx.obj["config"].chunk_size = chunk_size
    click.echo(f"Fetching {url} as {asset_id}...")
    try:
        with _open_assets(ctx) as assets:
            if buffered:
                assets.load_or_fetch_model(url, asset_id, echo_progress)
            else:
                assets.stream_and_store(url, asset_id, echo_progress)
    except WeightVaultError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.argument("asset_id")
@click.pass_context
def has(ctx, asset_id):
    """Exit 0 if ASSET_ID is stored, 1 otherwise."""
    with _open_assets(ctx) as assets:
        present = assets.has_data(asset_id)
    click.echo("present" if present else "absent")
    ctx.exit(0 if present else 1)


@cli.command("list")
@click.pass_context
def list_assets(ctx):
    """List stored assets."""
    with _open_assets(ctx) as assets:
        for metadata in assets.list_assets():
            click.echo(
                f"{metadata.asset_id}\t{len(metadata.chunk_keys)} chunks\t{format_bytes(metadata.total_size)}"
            )


@cli.command()
@click.argument("asset_id")
@click.pass_context
def delete(ctx, asset_id):
    """Delete ASSET_ID and its chunks."""
    with _open_assets(ctx) as assets:
        deleted = assets.delete_asset(asset_id)
    if not deleted:
        raise click.ClickException(f"Asset {asset_id} not found")
    click.echo(f"Deleted {asset_id}")


@cli.command()
@click.argument("asset_id")
@click.argument("output", type=click.Path(dir_okay=False))
@click.pass_context
def export(ctx, asset_id, output):
    """Write ASSET_ID's bytes to OUTPUT."""
    try:
        with _open_assets(ctx) as assets:
            written = assets.export_asset(asset_id, output)
    except KeyError:
        raise click.ClickException(f"Asset {asset_id} not found")
    except WeightVaultError as e:
        raise click.ClickException(str(e))
    click.echo(f"Wrote {format_bytes(written)} to {output}")


@cli.command()
@click.pass_context
def gc(ctx):
    """Delete orphan chunks left by interrupted fetches."""
    with _open_assets(ctx) as assets:
        removed = assets.purge_orphan_chunks()
    click.echo(f"Removed {removed} orphan chunks")


@cli.group()
def cache():
    """Whole-blob model cache commands."""
    pass


@cache.command("add")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("model_id")
@click.option("--name", default=None, help="Display name (defaults to MODEL_ID)")
@click.option("--provider", default="wasm", help="Execution provider")
@click.option("--version", "model_version", default="1.0.0")
@click.pass_context
def cache_add(ctx, file, model_id, name, provider, model_version):
    """Cache FILE as MODEL_ID."""
    with open(file, "rb") as f:
        data = f.read()
    with _open_cache(ctx) as model_cache:
        if not model_cache.has_enough_space(len(data)):
            click.echo(f"Warning: {format_bytes(len(data))} exceeds remaining cache quota")
        if not model_cache.cache_model(model_id, name or model_id, data, provider, model_version):
            raise click.ClickException(f"Failed to cache {model_id}")
    click.echo(f"Cached {model_id} ({format_bytes(len(data))})")


@cache.command("stats")
@click.pass_context
def cache_stats(ctx):
    """Show cache usage."""
    with _open_cache(ctx) as model_cache:
        stats = model_cache.get_cache_stats()
        usage = model_cache.get_cache_usage_percentage()
    click.echo(f"Models: {stats.model_count}")
    click.echo(f"Total size: {format_bytes(stats.total_size)}")
    click.echo(f"Available: {format_bytes(stats.available_space)}")
    click.echo(f"Usage: {usage:.1f}%")


@cache.command("list")
@click.pass_context
def cache_list(ctx):
    """List cached models, newest first."""
    with _open_cache(ctx) as model_cache:
        for entry in model_cache.get_cached_models():
            click.echo(f"{entry.id}\t{entry.name}\t{entry.version}\t{entry.provider}\t{format_bytes(entry.size)}")


@cache.command("cleanup")
@click.option("--max-age-days", type=int, default=None, help="Remove entries older than this")
@click.pass_context
def cache_cleanup(ctx, max_age_days):
    """Remove old cache entries."""
    max_age = timedelta(days=max_age_days) if max_age_days is not None else None
    with _open_cache(ctx) as model_cache:
        removed = model_cache.cleanup_old_models(max_age)
    click.echo(f"Removed {removed} old models")


@cache.command("clear")
@click.pass_context
def cache_clear(ctx):
    """Remove every cache entry."""
    with _open_cache(ctx) as model_cache:
        if not model_cache.clear_all_cached_models():
            raise click.ClickException("Failed to clear cache")
    click.echo("Cache cleared")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
