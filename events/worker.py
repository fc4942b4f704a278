#!/usr/bin/env python3
"""
RQ Worker for manual match generation jobs.

Usage:
    python -m events.worker
    python -m events.worker --burst
    python -m events.worker --verbose
"""

import sys
import argparse
import logging
from typing import List, Optional

from redis import Redis
from rq import Worker

from core.config_loader import load_config

logger = logging.getLogger(__name__)


def start_worker(redis_url: str, queues: List[str], burst: bool = False) -> int:
    """Start the RQ worker. Returns a process exit code."""
    logger.info("Starting RQ Worker")
    logger.info(f"Redis URL: {redis_url}")
    logger.info(f"Queues: {', '.join(queues)}")
    logger.info(f"Burst mode: {burst}")

    try:
        redis_conn = Redis.from_url(redis_url)
        redis_conn.ping()
        logger.info("Connected to Redis")

        worker = Worker(queues, connection=redis_conn)

        if burst:
            logger.info("Running in burst mode...")
            worker.work(burst=True)
        else:
            logger.info("Worker started. Press Ctrl+C to stop.")
            worker.work()

    except KeyboardInterrupt:
        logger.info("Worker stopped")
    except Exception as e:
        logger.error(f"Worker error: {e}")
        return 1
    return 0


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description='Matching Engine Worker')
    parser.add_argument('--burst', action='store_true', help='Process all and exit')
    parser.add_argument('--queues', nargs='+', default=None)
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = load_config()
    queues = args.queues or [config.queue.name]
    sys.exit(start_worker(config.redis.url, queues, burst=args.burst))


if __name__ == '__main__':
    main()
