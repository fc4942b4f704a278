#!/usr/bin/env python3
"""
Matching Engine entrypoint.

Usage:
    python main.py init-db
    python main.py consume
    python main.py reconcile [--once]
    python main.py worker [--burst]
    python main.py serve
"""

import os
import sys
import logging
import signal
import argparse
import threading

from tenacity import retry, stop_after_attempt, wait_fixed, before_sleep_log

from core.app_context import AppContext
from core.config_loader import AppConfig, CONFIG_PATH_ENV, load_config
from core.metrics import start_exporter
from database.database import Database

logger = logging.getLogger(__name__)

# Shared shutdown flag for every long-running command
stop_event = threading.Event()


def signal_handler(sig, frame):
    logger.info("Shutdown signal received")
    stop_event.set()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@retry(
    stop=stop_after_attempt(5),
    wait=wait_fixed(3),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True
)
def init_db(config: AppConfig) -> None:
    """Create the match table, retrying while the database comes up."""
    database = Database(config.database)
    try:
        database.create_all()
    finally:
        database.dispose()


def start_metrics(config: AppConfig) -> None:
    if not config.metrics.enabled:
        return
    try:
        start_exporter(config.metrics.port)
    except OSError as e:
        logger.warning(f"Metrics exporter not started on port {config.metrics.port}: {e}")


def run_consumer(config: AppConfig) -> int:
    from events.consumer import EventConsumer
    from events.router import EventTriggerRouter

    if not config.events.enabled:
        logger.error("Event consumption is disabled in config")
        return 1

    start_metrics(config)
    with AppContext.build(config) as ctx:
        consumer = EventConsumer(
            ctx.redis,
            EventTriggerRouter(ctx.pipeline),
            config.events,
            stop_event=stop_event
        )
        try:
            consumer.run()
        finally:
            consumer.close()
    return 0


def run_reconciliation(config: AppConfig, once: bool) -> int:
    from pipeline.reconciliation import ReconciliationJob, ReconciliationScheduler

    if not config.reconciliation.enabled and not once:
        logger.info("Reconciliation disabled in config")
        return 0

    start_metrics(config)
    with AppContext.build(config) as ctx:
        job = ReconciliationJob(
            ctx.pipeline,
            ctx.subjects,
            ctx.opportunities,
            config.reconciliation,
            redis_conn=ctx.redis
        )
        if once:
            result = job.run_once(stop_event)
            return 0 if result.triggers_failed == 0 else 1

        ReconciliationScheduler(job, config.reconciliation.interval_seconds).run_forever(stop_event)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Matching Engine")
    parser.add_argument('--config', default='config.yaml', help='Path to config.yaml')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('init-db', help='Create database tables')
    subparsers.add_parser('consume', help='Consume subject/opportunity events')
    reconcile = subparsers.add_parser('reconcile', help='Run the reconciliation scheduler')
    reconcile.add_argument('--once', action='store_true', help='Run a single sweep and exit')
    worker = subparsers.add_parser('worker', help='Run the RQ worker for manual generation jobs')
    worker.add_argument('--burst', action='store_true', help='Process all queued jobs and exit')
    subparsers.add_parser('serve', help='Run the HTTP API')

    args = parser.parse_args(argv)

    # Child entrypoints (uvicorn app, RQ jobs) load config through this variable
    os.environ[CONFIG_PATH_ENV] = os.path.abspath(args.config)
    config = load_config(args.config)
    configure_logging(config.logging.level)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(f"Matching engine starting: {args.command}")

    if args.command == 'init-db':
        init_db(config)
        return 0

    if args.command == 'consume':
        init_db(config)
        return run_consumer(config)

    if args.command == 'reconcile':
        init_db(config)
        return run_reconciliation(config, args.once)

    if args.command == 'worker':
        from events.worker import start_worker
        # RQ installs its own signal handlers for warm shutdown
        signal.signal(signal.SIGINT, signal.default_int_handler)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)
        return start_worker(config.redis.url, [config.queue.name], burst=args.burst)

    if args.command == 'serve':
        from web.backend.app import main as serve
        init_db(config)
        serve()
        return 0

    parser.error(f"Unknown command {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
