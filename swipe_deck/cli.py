# === FILE: swipe_deck/cli.py ===
#!/usr/bin/env python3
"""
Command-line entry point for SwipeDeck.

Commands:
  list      Show pages in display order
  add       Add a page (address is normalised, title derived from the host)
  remove    Delete a page by id
  move      Move a page to a zero-based position
  rename    Change a page title
  reset     Replace every page with the configured defaults
  config    Show the effective configuration
  warm      Open live sessions for every page and report what loaded

Common options:
  --config PATH       YAML/JSON config (default: configs/default.yaml if present)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stderr only when omitted)

Example:
  swipe-deck add example.com --title Example
  swipe-deck move 3f2a... 0
"""
import asyncio
import json
import sys
from pathlib import Path

import click

from swipe_deck import __version__
from swipe_deck.cache import SessionCache, policy_for
from swipe_deck.config import load_config
from swipe_deck.engine import HttpBrowsingEngine
from swipe_deck.errors import DeckError
from swipe_deck.lifecycle import LifecycleCoordinator
from swipe_deck.logger import configure, get_logger
from swipe_deck.registry import PageRegistry
from swipe_deck.store import SQLitePageStore

log = get_logger("cli")

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def _open_registry(ctx) -> PageRegistry:
    cfg = ctx.obj['config']
    try:
        store = SQLitePageStore(cfg.store_path)
        registry = PageRegistry.from_config(store, cfg).open(cfg.default_pages)
    except DeckError as e:
        print_error(f'Cannot open page store: {e}')
    ctx.obj['store'] = store
    ctx.call_on_close(store.close)
    return registry


def _page_rows(pages):
    return [
        {'position': i, 'id': p.id, 'title': p.title, 'address': p.address}
        for i, p in enumerate(pages)
    ]


def _warn_if_dirty(registry: PageRegistry):
    if registry.last_failure is not None:
        click.secho(f'Warning: {registry.last_failure}', fg='yellow', err=True)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SwipeDeck, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to a YAML or JSON configuration file.'
)
@click.option(
    '--log-level', 'log_level',
    default=None,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    help='Logging level (overrides the config).'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file path (stderr only when omitted).'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file):
    """SwipeDeck command group."""
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Error loading configuration: {e}')
    configure(
        level=(log_level or cfg.log_level).upper(),
        log_file=str(log_file) if log_file else None,
    )
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('list', context_settings=CONTEXT_SETTINGS)
@click.option('--json', 'as_json', is_flag=True, help='Print pages as JSON.')
@click.pass_context
def list_pages(ctx, as_json):
    """Show pages in display order."""
    registry = _open_registry(ctx)
    rows = _page_rows(registry.list())
    if as_json:
        click.echo(json.dumps(rows, ensure_ascii=False, indent=2))
        return
    if not rows:
        click.echo('No webpages added yet')
        return
    for row in rows:
        click.echo(f"{row['position']:>3}  {row['id']}  {row['title']}  <{row['address']}>")


@cli.command('add', context_settings=CONTEXT_SETTINGS)
@click.argument('address')
@click.option('--title', '-t', default=None, help='Display title (defaults to the host).')
@click.pass_context
def add_page(ctx, address, title):
    """Add a page."""
    registry = _open_registry(ctx)
    try:
        page = registry.add(address, title)
    except DeckError as e:
        print_error(f'Cannot add {address!r}: {e}')
    _warn_if_dirty(registry)
    click.echo(f'Added {page.title} <{page.address}> as {page.id}')


@cli.command('remove', context_settings=CONTEXT_SETTINGS)
@click.argument('page_id')
@click.pass_context
def remove_page(ctx, page_id):
    """Delete a page by id."""
    registry = _open_registry(ctx)
    if registry.get(page_id) is None:
        print_error(f'No page with id {page_id}')
    registry.delete(page_id)
    _warn_if_dirty(registry)
    store = ctx.obj['store']
    last = store.load_last_index()
    if last is not None and last >= len(registry):
        store.save_last_index(max(0, len(registry) - 1))
    click.echo(f'Removed {page_id}')


@cli.command('move', context_settings=CONTEXT_SETTINGS)
@click.argument('page_id')
@click.argument('position', type=int)
@click.pass_context
def move_page(ctx, page_id, position):
    """Move a page to a zero-based position."""
    registry = _open_registry(ctx)
    if registry.get(page_id) is None:
        print_error(f'No page with id {page_id}')
    try:
        registry.reorder(page_id, position)
    except DeckError as e:
        print_error(f'Cannot move {page_id}: {e}')
    _warn_if_dirty(registry)
    click.echo(f'Moved {page_id} to position {position}')


@cli.command('rename', context_settings=CONTEXT_SETTINGS)
@click.argument('page_id')
@click.argument('title')
@click.pass_context
def rename_page(ctx, page_id, title):
    """Change a page title."""
    registry = _open_registry(ctx)
    page = registry.rename(page_id, title)
    if page is None:
        print_error(f'No page with id {page_id}')
    _warn_if_dirty(registry)
    click.echo(f'Renamed {page_id} to {page.title}')


@cli.command('reset', context_settings=CONTEXT_SETTINGS)
@click.confirmation_option(prompt='Replace every page with the defaults?')
@click.pass_context
def reset_pages(ctx):
    """Replace every page with the configured defaults."""
    cfg = ctx.obj['config']
    registry = _open_registry(ctx)
    registry.reset(cfg.default_pages)
    _warn_if_dirty(registry)
    ctx.obj['store'].save_last_index(0)
    click.echo(f'Registry reset to {len(registry)} default page(s)')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the effective configuration as JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


async def _warm_all(cfg, registry, store, wait):
    async with HttpBrowsingEngine.from_config(cfg) as engine:
        cache = SessionCache(engine, policy=policy_for(cfg.max_sessions))
        coordinator = LifecycleCoordinator(registry, cache, store, preload_radius=cfg.preload_radius)
        index = coordinator.on_became_active()
        # posted warm-ups run on the next loop iteration
        await asyncio.sleep(0)
        handles = [cache.display(p.address) for p in registry.list()]
        try:
            await asyncio.wait_for(
                asyncio.gather(*(h.wait() for h in handles)), timeout=wait
            )
        except asyncio.TimeoutError:
            log.warning('Not every page loaded within %s seconds', wait)
        rows = []
        for row, handle in zip(_page_rows(registry.list()), handles):
            row['loaded'] = cache.is_loaded(row['address'])
            row['status'] = handle.status
            row['document_title'] = handle.document_title
            rows.append(row)
        cache.clear()
        return index, rows


@cli.command('warm', context_settings=CONTEXT_SETTINGS)
@click.option('--wait', 'wait', type=float, default=15.0, show_default=True,
              help='Seconds to wait for navigations to finish.')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON.')
@click.pass_context
def warm(ctx, wait, as_json):
    """Open live sessions for every page and report which ones loaded."""
    cfg = ctx.obj['config']
    registry = _open_registry(ctx)
    try:
        index, rows = asyncio.run(_warm_all(cfg, registry, ctx.obj['store'], wait))
    except Exception as e:
        print_error(f'Warm-up failed: {e}')
    if as_json:
        click.echo(json.dumps({'current_index': index, 'pages': rows}, ensure_ascii=False, indent=2))
        return
    for row in rows:
        mark = 'ok ' if row['loaded'] else '-- '
        click.echo(f"{mark}{row['position']:>3}  {row['title']}  <{row['address']}>  {row['status'] or ''}")
    click.echo(f'Current page: {index}')


if __name__ == "__main__":
    cli()
