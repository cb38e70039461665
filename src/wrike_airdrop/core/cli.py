"""Command line interface for the Wrike Airdrop snap-in."""

import sys
import json
from typing import Optional

import click

from .config import setup_logging, load_environment, get_optional_env
from ..engine.documents import (
    INITIAL_DOMAIN_MAPPING_PATH, EXTERNAL_DOMAIN_METADATA_PATH, load_json_document,
)
from ..engine.mapping_validator import check_domain_mapping
from ..engine.metadata_validator import check_external_domain_metadata
from ..engine.normalizers import normalize_all, normalize_project
from ..engine.router import ExtractionRouter
from ..exceptions import DocumentLoadError, WrikeAPIError
from ..integrations.wrike.client import create_client_from_env
from ..services.spawner import LocalSpawner
from ..services.transport import RecordingTransport
from ..workers.contract import verify_terminal_events


@click.group()
@click.option('--log-level', default='INFO', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Set the logging level')
@click.option('--env-file', type=click.Path(exists=True), help='Path to .env file')
def cli(log_level: str, env_file: Optional[str]) -> None:
    """Wrike to DevRev Airdrop extraction tool."""
    setup_logging(log_level)
    load_environment(env_file)


def _print_report(report) -> None:
    for issue in report.errors:
        click.echo(f"  ERROR   {issue}")
    for issue in report.warnings:
        click.echo(f"  WARNING {issue}")


def _validate_document(path: str, check) -> None:
    try:
        document = load_json_document(path)
    except DocumentLoadError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    _, report = check(document)
    _print_report(report)
    if not report.is_valid:
        click.echo(f"❌ {report.document} is invalid: {len(report.errors)} error(s)", err=True)
        sys.exit(1)
    click.echo(f"✅ {report.document} is valid ({len(report.warnings)} warning(s))")


@cli.command()
@click.argument('path', required=False, type=click.Path())
def validate_mapping(path: Optional[str]) -> None:
    """Validate a Domain Mapping Document (defaults to the packaged one)."""
    _validate_document(path or str(INITIAL_DOMAIN_MAPPING_PATH), check_domain_mapping)


@cli.command()
@click.argument('path', required=False, type=click.Path())
def validate_metadata(path: Optional[str]) -> None:
    """Validate an External Metadata Document (defaults to the packaged one)."""
    _validate_document(path or str(EXTERNAL_DOMAIN_METADATA_PATH), check_external_domain_metadata)


@cli.command()
@click.argument('event_file', type=click.Path(exists=True))
@click.option('--dry-run', is_flag=True, help='Record worker events locally instead of posting callbacks')
def extract(event_file: str, dry_run: bool) -> None:
    """Route a lifecycle event read from EVENT_FILE."""
    try:
        with open(event_file, 'r', encoding='utf-8') as f:
            events = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        click.echo(f"❌ Could not read event file: {e}", err=True)
        sys.exit(1)

    transport = RecordingTransport() if dry_run else None
    spawner = LocalSpawner(transport_factory=lambda event: transport) if dry_run else None
    result = ExtractionRouter(spawner=spawner).route(events)
    click.echo(json.dumps(result.to_response(), indent=2))

    if transport is not None:
        click.echo("\nRecorded events:")
        for event in transport.events:
            click.echo(f"  {event.event_type}: {json.dumps(event.data)}")
        for violation in verify_terminal_events(transport.events):
            click.echo(f"  CONTRACT VIOLATION: {violation}", err=True)
        for item_type, items in transport.uploads.items():
            click.echo(f"  uploaded {len(items)} {item_type}")

    if not result.success:
        sys.exit(1)


@cli.command()
def test_connection() -> None:
    """Test connection to the Wrike API."""
    try:
        client = create_client_from_env()
        result = client.test_authentication()
    except ValueError as e:
        click.echo(f"❌ Configuration Error: {e}", err=True)
        sys.exit(1)

    if result["success"]:
        click.echo("✅ Successfully connected to Wrike API!")
        click.echo(f"Contacts visible: {result['details'].get('contacts_count', 0)}")
    else:
        click.echo(f"❌ {result['message']}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--space-id', help='Wrike space ID (defaults to WRIKE_SPACE_ID)')
@click.option('--output', type=click.Choice(['table', 'json']), default='table',
              help='Output format')
def list_projects(space_id: Optional[str], output: str) -> None:
    """List the projects of a Wrike space."""
    space_id = space_id or get_optional_env('WRIKE_SPACE_ID')
    if not space_id:
        click.echo("❌ Configuration Error: pass --space-id or set WRIKE_SPACE_ID", err=True)
        sys.exit(1)

    try:
        client = create_client_from_env()
        projects = normalize_all(client.list_projects(space_id), normalize_project)
    except WrikeAPIError as e:
        click.echo(f"Wrike API Error: {e}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"Configuration Error: {e}", err=True)
        sys.exit(1)

    if output == 'json':
        click.echo(json.dumps({'projects': projects, 'total': len(projects)}, indent=2))
        return

    if not projects:
        click.echo("No projects found.")
        return
    click.echo(f"{'ID':<20} {'Status':<12} {'Title'}")
    click.echo("-" * 80)
    for project in projects:
        click.echo(f"{project['id']:<20} {project['status']:<12} {project['title']}")
    click.echo(f"\nTotal projects: {len(projects)}")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
