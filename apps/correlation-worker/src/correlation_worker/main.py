"""
Correlation Worker - Dispatch Channel Consumer

Consumes dispatched requests, runs the configured processor and writes the
outcome back to the record store.

This worker uses ONLY:
- relaycore (settings, logging, redis)
- correlation (store, channels, processors, service)

Features:
- Pub/sub (broadcast) or Redis Streams (consumer group) dispatch
- PEL reclaim for messages orphaned by dead workers (stream mode)
- Bounded in-flight concurrency
- Graceful shutdown: stop reading, drain in-flight requests
"""

import logging
import signal
import sys
import threading

from relaycore.logging import setup_logging
from relaycore.settings import get_settings

from correlation.factory import Services, build_services
from correlation.service.worker import RequestWorker

logger = logging.getLogger(__name__)

# Graceful shutdown
shutdown_event = threading.Event()


def signal_handler(signum, frame):
    logger.info(f"Received signal {signum}, requesting shutdown...")
    shutdown_event.set()


def run_reclaim_loop(
    worker: RequestWorker,
    interval_sec: int,
    min_idle_ms: int,
    stop_event: threading.Event = shutdown_event,
) -> None:
    """
    Background thread for reclaiming pending messages.

    Runs every interval_sec seconds until stop_event is set.
    """
    logger.info(f"Starting PEL reclaim loop (interval={interval_sec}s, idle_threshold={min_idle_ms}ms)")

    # wait() returns True once the stop event is set
    while not stop_event.wait(interval_sec):
        try:
            reclaimed = worker.reclaim_pending(min_idle_ms=min_idle_ms, count=100)
            if reclaimed > 0:
                logger.info(f"Reclaimed and processed {reclaimed} pending messages")
        except Exception as e:
            logger.error(f"Error in reclaim loop: {e}", exc_info=True)


def main():
    """Main worker loop."""
    setup_logging()
    settings = get_settings()

    if settings.DISPATCH_MODE == "inline":
        logger.error("DISPATCH_MODE=inline runs requests in the submitting process; nothing to consume")
        sys.exit(1)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    services = build_services(settings)

    logger.info(
        f"Starting correlation worker (mode={settings.DISPATCH_MODE}, "
        f"channel={settings.DISPATCH_CHANNEL}, concurrency={settings.WORKER_CONCURRENCY}, "
        f"processor={settings.PROCESSOR})"
    )

    try:
        services.channel.start()
    except Exception as e:
        logger.error(f"Failed to initialize dispatch channel: {e}", exc_info=True)
        sys.exit(1)

    worker = run_worker(services, shutdown_event)

    logger.info(f"Correlation worker shutting down gracefully (processed={worker.processed})")


def run_worker(services: Services, stop_event: threading.Event = shutdown_event) -> RequestWorker:
    """
    Consume the dispatch channel until stop_event is set.

    In stream mode, orphaned messages are reclaimed once up front and then
    periodically on a background thread. Returns after in-flight requests,
    including those of a running reclaim pass, are finalized.
    """
    settings = services.settings
    worker = services.worker()

    reclaim_thread = None
    if settings.DISPATCH_MODE == "stream":
        logger.info(
            f"Stream {settings.DISPATCH_CHANNEL} has {services.channel.pending_count()} unacknowledged "
            f"messages in group {settings.STREAM_GROUP}"
        )

        # Initial reclaim on startup to pick up orphaned messages
        logger.info("Running initial PEL reclaim on startup...")
        try:
            initial_reclaimed = worker.reclaim_pending(min_idle_ms=settings.RECLAIM_IDLE_MS, count=100)
            if initial_reclaimed > 0:
                logger.info(f"Initial reclaim: processed {initial_reclaimed} orphaned messages")
        except Exception as e:
            logger.warning(f"Initial reclaim failed: {e}")

        reclaim_thread = threading.Thread(
            target=run_reclaim_loop,
            args=(worker, settings.RECLAIM_INTERVAL_SEC, settings.RECLAIM_IDLE_MS, stop_event),
            daemon=True,
        )
        reclaim_thread.start()

    worker.run(stop_event)

    if reclaim_thread is not None:
        # Let a reclaim pass that is still executing finish its requests
        reclaim_thread.join()

    return worker


if __name__ == "__main__":
    main()
