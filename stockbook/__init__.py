from __future__ import annotations

import logging

from flask import Flask

from .backup import purge_snapshots
from .cli import register_cli
from .config import Config
from .extensions import scheduler, store
from .permissions import default_document
from .registry import BOOTSTRAP_COUNTERS, COLLECTIONS


def _bootstrap_app(app: Flask) -> None:
    """Create any missing collection file with its starting shape."""
    stamp = store.timestamp()
    for name, spec in COLLECTIONS.items():
        if store.path_for(name).exists():
            continue
        if name == 'route-permissions':
            document = default_document(stamp)
        else:
            document = spec.empty_document()
            counters = BOOTSTRAP_COUNTERS.get(name)
            if counters:
                document.update(counters)
                document['lastUpdated'] = stamp
            elif spec.stamp_on_add:
                document['lastUpdated'] = stamp
        if store.write_collection(name, document):
            app.logger.info('Initialized %s', store.path_for(name))
        else:
            app.logger.error('Could not initialize %s', store.path_for(name))


def _nightly_backup(app: Flask) -> None:
    target = store.backup()
    if target is None:
        app.logger.error('Nightly backup failed')
        return
    removed = purge_snapshots(store.backup_dir, app.config.get('BACKUP_KEEP', 7))
    app.logger.info('Nightly backup %s; purged %d old snapshot(s)', target, len(removed))


def create_app(config_object: type[Config] | None = None) -> Flask:
    app = Flask(__name__)
    cfg = config_object or Config
    app.config.from_object(cfg)
    app.logger.setLevel(getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')), logging.INFO))

    store.init_app(app)
    register_cli(app)

    def _schedule_job(fn, **trigger_kwargs):
        def runner():
            with app.app_context():
                fn(app)
        scheduler.add_job(runner, **trigger_kwargs)

    with app.app_context():
        _bootstrap_app(app)
        if app.config.get('SCHEDULER_ENABLED') and not scheduler.running:
            _schedule_job(
                _nightly_backup,
                trigger='cron',
                hour=app.config.get('BACKUP_HOUR', 23),
                minute=app.config.get('BACKUP_MINUTE', 59),
            )
            scheduler.start()
            app.apscheduler = scheduler

    return app
