#!/usr/bin/env python3
"""
Sitewatch CLI
Run the background monitor and query the stored error feed from the command line.
"""

import asyncio
import click
import json
import logging
import sys
import yaml
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any

from sitewatch import __version__
from sitewatch.core.config import ALERT_SINKS, DEFAULT_CONFIG_FILE, MonitorConfig, setup_logging
from sitewatch.core.errors import SitewatchError
from sitewatch.service.commands import (
    CommandRouter,
    GET_ERROR_STATISTICS,
    HIDE_ERROR,
    LIST_ALL_ERRORS_FOR_STATS,
)
from sitewatch.service.monitor import MonitoringService

logger = logging.getLogger(__name__)


class SitewatchCLI:
    """Main CLI class for Sitewatch"""

    def __init__(self):
        self.config_file: Path = DEFAULT_CONFIG_FILE
        self.config: Optional[MonitorConfig] = None
        self.service: Optional[MonitoringService] = None
        self.router: Optional[CommandRouter] = None

    def load_config(self, config_file: Optional[str] = None, db_path: Optional[str] = None) -> MonitorConfig:
        """Load CLI configuration"""
        self.config_file = Path(config_file) if config_file else DEFAULT_CONFIG_FILE
        self.config = MonitorConfig.from_yaml(self.config_file)
        if db_path:
            self.config.db_path = db_path
        return self.config

    async def _setup_system(self) -> bool:
        """Open the event store and build the command router"""
        try:
            if self.config is None:
                self.load_config()
            self.service = MonitoringService(self.config)
            await self.service.initialize()
            self.router = CommandRouter.for_service(self.service)
            logger.info(f"Event store ready: {self.config.db_path}")
            return True
        except SitewatchError as e:
            click.echo(f"❌ System setup failed: {e}")
            return False

    async def _shutdown_system(self):
        """Clean shutdown of the system"""
        if self.service:
            await self.service.shutdown()
            self.service = None
            self.router = None


# CLI instance
cli_instance = SitewatchCLI()


def _format_timestamp(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime('%Y-%m-%d %H:%M:%S')


def _display_record(record: Dict[str, Any]) -> None:
    """Display a wire-form record on one line"""
    hidden = " (hidden)" if record.get('isHidden') else ""
    click.echo(
        f"   #{record['id']} [{record['site']}] {record['errorCode']} "
        f"{record['title']} - {_format_timestamp(record['timestamp'])}{hidden}"
    )


def _finish(exit_code: Optional[int]) -> None:
    """Exit with the code returned by a command implementation"""
    if exit_code:
        sys.exit(exit_code)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--config', 'config_file', type=click.Path(dir_okay=False),
              help=f'Configuration file (default: {DEFAULT_CONFIG_FILE})')
@click.option('--db', 'db_path', type=click.Path(dir_okay=False), help='Override the event store path')
@click.version_option(version=__version__, prog_name='Sitewatch')
def cli(verbose: bool, debug: bool, config_file: Optional[str], db_path: Optional[str]):
    """
    Sitewatch - Synthetic fleet error feed

    Generates server error events on a timer, keeps the most recent ones in a
    bounded store, and answers listing and statistics queries.
    """
    try:
        config = cli_instance.load_config(config_file, db_path)
    except SitewatchError as e:
        raise click.ClickException(str(e))

    if debug:
        setup_logging(config, level='DEBUG')
    elif verbose:
        setup_logging(config, level='INFO')
    else:
        # Production mode - only show warnings and errors
        logging.basicConfig(
            level=logging.WARNING,
            format='%(levelname)s: %(message)s'
        )


@cli.command()
@click.option('--interval', type=float, help='Seconds between generated errors')
@click.option('--alert-sink', type=click.Choice(ALERT_SINKS), help='Override alert delivery')
def run(interval: Optional[float], alert_sink: Optional[str]):
    """Run background monitoring in the foreground until interrupted"""
    if interval is not None:
        cli_instance.config.interval_seconds = interval
    if alert_sink is not None:
        cli_instance.config.alert_sink = alert_sink
    _finish(asyncio.run(_run_monitor()))


async def _run_monitor():
    """Run monitor implementation"""
    try:
        service = MonitoringService(cli_instance.config)
    except SitewatchError as e:
        click.echo(f"❌ Invalid configuration: {e}")
        return 1

    click.echo("🔥 Server monitoring active")
    click.echo(f"   Store: {cli_instance.config.db_path}")
    click.echo(f"   Interval: {cli_instance.config.interval_seconds:g}s")
    click.echo(f"   Alerts: {cli_instance.config.alert_sink}")

    try:
        await service.run_forever()
    except SitewatchError as e:
        click.echo(f"❌ Monitoring failed: {e}")
        return 1

    stats = service.scheduler.stats
    click.echo(f"\n⏹  Monitoring stopped after {stats['records_inserted']} generated errors")


@cli.command()
@click.option('--limit', default=None, type=click.IntRange(min=1), help='Maximum number of errors to show')
@click.option('--offset', default=0, type=click.IntRange(min=0), help='Number of newest errors to skip')
@click.option('--site', help='Only show errors from this site')
@click.option('--json', 'as_json', is_flag=True, help='Print JSON')
def recent(limit: Optional[int], offset: int, site: Optional[str], as_json: bool):
    """Show the most recent visible errors"""
    _finish(asyncio.run(_show_recent(limit, offset, site, as_json)))


async def _show_recent(limit: Optional[int], offset: int, site: Optional[str], as_json: bool):
    """Show recent errors implementation"""
    try:
        if not await cli_instance._setup_system():
            return 1

        try:
            records = await cli_instance.service.query.recent_visible(limit, offset=offset, site=site)
        except SitewatchError as e:
            click.echo(f"❌ Could not load errors: {e}")
            return 1

        wire = [record.to_wire() for record in records]
        if as_json:
            click.echo(json.dumps(wire, indent=2, ensure_ascii=False))
            return

        if not wire:
            click.echo("✅ No visible errors")
            return

        click.echo(f"🚨 Recent errors ({len(wire)}):")
        for record in wire:
            _display_record(record)
    finally:
        await cli_instance._shutdown_system()


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='Print JSON')
def stats(as_json: bool):
    """Show error statistics (hidden errors included)"""
    _finish(asyncio.run(_show_stats(as_json)))


async def _show_stats(as_json: bool):
    """Show statistics implementation"""
    try:
        if not await cli_instance._setup_system():
            return 1

        result = await cli_instance.router.dispatch(GET_ERROR_STATISTICS)
        data = result.value

        if as_json:
            click.echo(json.dumps(data, indent=2, ensure_ascii=False))
            return

        click.echo("📊 Error Statistics")
        click.echo(f"   Total: {data['totalErrors']}")
        click.echo(f"   Visible: {data['visibleErrors']}")
        click.echo(f"   Hidden: {data['hiddenErrors']}")
        click.echo(f"   Last 24h: {data['recentErrors24h']}")
        if data['errorTypes']:
            click.echo("\n📈 By type:")
            for entry in data['errorTypes']:
                click.echo(f"   {entry['count']:>5}  {entry['title']}")
    finally:
        await cli_instance._shutdown_system()


@cli.command()
def dump():
    """Print every stored error as JSON"""
    _finish(asyncio.run(_dump_all()))


async def _dump_all():
    try:
        if not await cli_instance._setup_system():
            return 1

        result = await cli_instance.router.dispatch(LIST_ALL_ERRORS_FOR_STATS)
        click.echo(json.dumps(result.value, indent=2, ensure_ascii=False))
    finally:
        await cli_instance._shutdown_system()


@cli.command()
@click.argument('error_id', type=int)
def hide(error_id: int):
    """Hide an error from the recent list"""
    _finish(asyncio.run(_hide_error(error_id)))


async def _hide_error(error_id: int):
    try:
        if not await cli_instance._setup_system():
            return 1

        result = await cli_instance.router.dispatch(HIDE_ERROR, {'errorId': error_id})
        if not result.ok:
            click.echo(f"❌ {result.error_code}: {result.message}")
            return 1
        click.echo(f"🙈 Error #{error_id} hidden")
    finally:
        await cli_instance._shutdown_system()


@cli.command()
@click.argument('command')
@click.option('--args', 'raw_args', default=None, help='Command arguments as a JSON object')
def call(command: str, raw_args: Optional[str]):
    """Invoke a raw command of the command interface"""
    arguments = None
    if raw_args:
        try:
            arguments = json.loads(raw_args)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"Invalid JSON: {e}", param_hint='--args')
        if not isinstance(arguments, dict):
            raise click.BadParameter("Arguments must be a JSON object", param_hint='--args')
    _finish(asyncio.run(_call_command(command, arguments)))


async def _call_command(command: str, arguments: Optional[Dict[str, Any]]):
    try:
        if not await cli_instance._setup_system():
            return 1

        result = await cli_instance.router.dispatch(command, arguments)
        click.echo(json.dumps(result.model_dump(), indent=2, ensure_ascii=False))
        if not result.ok:
            return 1
    finally:
        await cli_instance._shutdown_system()


@cli.command()
def config():
    """Show the effective configuration"""
    click.echo(f"⚙️  Config file: {cli_instance.config_file}")
    if not cli_instance.config_file.exists():
        click.echo("   (not found, using defaults and environment)")
    click.echo()
    click.echo(yaml.dump(cli_instance.config.to_dict(), default_flow_style=False, allow_unicode=True))

    try:
        cli_instance.config.validate()
        click.echo("✅ Configuration is valid")
    except SitewatchError as e:
        click.echo(f"❌ {e}")
        sys.exit(1)


def main():
    """Main CLI entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\n⚠️  Interrupted by user")
        sys.exit(130)


if __name__ == '__main__':
    main()
