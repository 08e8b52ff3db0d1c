import click
from flask import current_app

from .backup import purge_snapshots
from .extensions import store
from .permissions import set_route_enabled
from .sequences import KINDS


def register_cli(app):
    @app.cli.command('backup')
    def backup():
        """Snapshot every collection file into the backup directory."""
        target = store.backup()
        if target is None:
            raise click.ClickException('Backup failed; see the log for details.')
        click.echo(f'Backup created: {target}')

    @app.cli.command('purge-backups')
    @click.option('--limit', default=None, type=int, help='Number of snapshots to keep.')
    def purge_backups(limit):
        keep = limit if limit is not None else current_app.config.get('BACKUP_KEEP', 7)
        removed = purge_snapshots(store.backup_dir, keep)
        click.echo(f'Removed {len(removed)} snapshot(s); kept the newest {keep}.')

    @app.cli.command('cleanup-flat-keys')
    @click.argument('collection', default='items')
    def cleanup_flat_keys(collection):
        """Fold leftover dotted keys such as "stock.quantity" into nested fields."""
        cleaned = store.cleanup_flat_keys(collection)
        if cleaned:
            click.echo(f'Cleaned {cleaned} duplicate properties from {collection}.json')
        else:
            click.echo(f'No duplicate properties found in {collection}.json')

    @app.cli.command('next-document-id')
    @click.argument('kind', type=click.Choice(KINDS))
    @click.option('--gst/--no-gst', default=False)
    def next_document_id(kind, gst):
        """Issue the next bill or quotation number."""
        document_id = store.generate_next_document_id(kind, gst)
        if document_id is None:
            raise click.ClickException(f'Failed to generate {kind} number.')
        click.echo(document_id)

    @app.cli.command('route-permission')
    @click.argument('group')
    @click.argument('route')
    @click.option('--enable/--disable', required=True)
    def route_permission(group, route, enable):
        if not set_route_enabled(store, group, route, enable):
            raise click.ClickException(f'Unknown route {route} in group {group}.')
        current_app.logger.info('Route %s %s', route, 'enabled' if enable else 'disabled')
        click.echo(f'{route}: {"enabled" if enable else "disabled"}')
