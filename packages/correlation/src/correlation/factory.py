"""
Service Wiring

Builds the store, channel, dispatcher and handlers from settings. Apps and
the CLI call build_services() once at startup.
"""

import logging
from dataclasses import dataclass

import redis

from relaycore.redis import get_redis_client
from relaycore.settings import Settings, get_settings

from correlation.channels.base import DispatchChannel
from correlation.channels.pubsub import RedisPubSubChannel
from correlation.channels.stream import RedisStreamChannel
from correlation.processors import load_processor
from correlation.processors.base import Processor
from correlation.service.dispatch import ChannelDispatcher, Dispatcher, InlineDispatcher
from correlation.service.observer import LoggingObserver, OperationalObserver
from correlation.service.poll import PollHandler
from correlation.service.submission import SubmissionHandler
from correlation.service.worker import Finalizer, RequestExecutor, RequestWorker
from correlation.store.base import RecordStore
from correlation.store.redis_store import RedisRecordStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a process needs to submit, process and poll requests."""

    settings: Settings
    store: RecordStore
    processor: Processor
    observer: OperationalObserver
    executor: RequestExecutor
    dispatcher: Dispatcher
    submission: SubmissionHandler
    poll: PollHandler
    channel: DispatchChannel | None = None

    def worker(self) -> RequestWorker:
        """
        Build a worker consuming this process's dispatch channel.

        Raises:
            ValueError: In inline mode, where there is no channel to consume
        """
        if self.channel is None:
            raise ValueError("Inline dispatch mode has no channel to consume")
        return RequestWorker(
            self.channel,
            self.executor,
            concurrency=self.settings.WORKER_CONCURRENCY,
            block_ms=self.settings.WORKER_BLOCK_MS,
            observer=self.observer,
        )

    def close(self, wait: bool = True) -> None:
        self.dispatcher.shutdown(wait=wait)


def build_channel(settings: Settings, redis_client: redis.Redis) -> DispatchChannel:
    """Create the dispatch channel for pubsub or stream mode."""
    if settings.DISPATCH_MODE == "stream":
        return RedisStreamChannel(
            redis_client,
            settings.DISPATCH_CHANNEL,
            settings.STREAM_GROUP,
            settings.WORKER_CONSUMER_NAME,
            max_len=settings.STREAM_MAX_LEN,
        )
    if settings.DISPATCH_MODE == "pubsub":
        return RedisPubSubChannel(redis_client, settings.DISPATCH_CHANNEL)
    raise ValueError(f"Dispatch mode '{settings.DISPATCH_MODE}' has no channel")


def build_services(
    settings: Settings | None = None,
    redis_client: redis.Redis | None = None,
    store: RecordStore | None = None,
    processor: Processor | None = None,
    observer: OperationalObserver | None = None,
) -> Services:
    """
    Wire services from settings.

    Args:
        settings: Settings to use (default: get_settings())
        redis_client: Redis client (default: shared client from settings)
        store: Record store override (default: Redis store)
        processor: Processor override (default: settings.PROCESSOR)
        observer: Observer override (default: LoggingObserver)

    Returns:
        Wired services
    """
    settings = settings or get_settings()
    observer = observer or LoggingObserver()

    if redis_client is None and (store is None or settings.DISPATCH_MODE != "inline"):
        redis_client = get_redis_client()

    store = store or RedisRecordStore(redis_client, key_prefix=settings.KEY_PREFIX)
    processor = processor or load_processor(settings.PROCESSOR)

    finalizer = Finalizer(store, settings.RECORD_TTL_SECONDS, observer)
    executor = RequestExecutor(processor, finalizer, observer)

    channel = None
    if settings.DISPATCH_MODE == "inline":
        dispatcher: Dispatcher = InlineDispatcher(
            executor,
            concurrency=settings.WORKER_CONCURRENCY,
            observer=observer,
        )
    else:
        channel = build_channel(settings, redis_client)
        dispatcher = ChannelDispatcher(channel)

    logger.info(
        f"Services ready (dispatch={settings.DISPATCH_MODE}, processor={settings.PROCESSOR})"
    )

    return Services(
        settings=settings,
        store=store,
        processor=processor,
        observer=observer,
        executor=executor,
        dispatcher=dispatcher,
        submission=SubmissionHandler(store, dispatcher, settings.RECORD_TTL_SECONDS, observer),
        poll=PollHandler(store),
        channel=channel,
    )
