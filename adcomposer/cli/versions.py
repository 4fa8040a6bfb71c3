"""
Version stream commands for the AdComposer CLI
"""

import asyncio

import click

from ..core.exceptions import VersionNotFoundError
from ..services.models import Stream
from ..storage.versions import VersionStore

STREAM_CHOICE = click.Choice([s.value for s in Stream])


@click.command('versions')
@click.argument('ad_id')
@click.argument('stream', type=STREAM_CHOICE)
def list_versions(ad_id: str, stream: str):
    """
    List the versions of a stream

    Examples:
        adcomposer versions ad-123 voices
        adcomposer versions ad-123 music
    """
    asyncio.run(_list_versions(ad_id, Stream(stream)))


async def _list_versions(ad_id: str, stream: Stream):
    store = VersionStore()
    versions = await store.get_all_versions_with_data(ad_id, stream)
    active = await store.get_active_version(ad_id, stream)

    if not versions:
        click.echo(f"No {stream.value} versions for ad {ad_id}.")
        return

    click.echo(f"\n{'='*60}")
    click.echo(f"{stream.value} versions for {ad_id} ({len(versions)})")
    click.echo(f"{'='*60}\n")

    for version_id, version in versions.items():
        marker = "*" if version_id == active else " "
        click.echo(f"{marker} {version_id}  [{version.status.value}]  by {version.created_by.value}")
        click.echo(f"   Created: {version.created_at.isoformat()}")
        if version.parent_version_id:
            click.echo(f"   Parent: {version.parent_version_id}")
        if version.request_text:
            click.echo(f"   Request: {version.request_text}")
        click.echo()


@click.command('activate')
@click.argument('ad_id')
@click.argument('stream', type=STREAM_CHOICE)
@click.argument('version_id')
def activate_version(ad_id: str, stream: str, version_id: str):
    """
    Make a version the active one for its stream

    Examples:
        adcomposer activate ad-123 voices v2
    """
    try:
        asyncio.run(VersionStore().set_active_version(ad_id, stream, version_id))
    except VersionNotFoundError as e:
        click.echo(f"❌ {e}", err=True)
        raise SystemExit(1)

    click.echo(f"✅ Activated {stream} {version_id} for ad {ad_id}")
