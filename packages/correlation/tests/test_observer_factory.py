"""Tests for the logging observer and service wiring."""

import logging

import pytest

from relaycore.settings import Settings

from correlation.channels.pubsub import RedisPubSubChannel
from correlation.channels.stream import RedisStreamChannel
from correlation.contracts.api import SubmitRequest
from correlation.contracts.record import CorrelationRecord
from correlation.exceptions import StoreTransportError
from correlation.factory import build_channel, build_services
from correlation.processors.builtin import UppercaseProcessor
from correlation.service.dispatch import ChannelDispatcher, InlineDispatcher
from correlation.service.observer import FailureStage, LoggingObserver
from correlation.store.redis_store import RedisRecordStore


def make_settings(**overrides) -> Settings:
    values = {"DISPATCH_MODE": "inline", "PROCESSOR": "echo", "KEY_PREFIX": "t:"}
    values.update(overrides)
    return Settings(**values)


class TestLoggingObserver:
    """Test that lifecycle events reach the log."""

    def test_finalized_logged(self, caplog):
        caplog.set_level(logging.INFO)
        record = CorrelationRecord.pending("req-1", "x").finish("y")

        LoggingObserver().on_finalized(record)

        assert "Finalized req-1" in caplog.text

    def test_error_logged_with_stage(self, caplog):
        caplog.set_level(logging.INFO)

        LoggingObserver().on_error(FailureStage.FINALIZE, "req-1", StoreTransportError("down"))

        (log_record,) = caplog.records
        assert log_record.levelno == logging.ERROR
        assert log_record.stage == "finalize"
        assert log_record.request_id == "req-1"

    def test_read_back_miss_is_warning(self, caplog):
        caplog.set_level(logging.INFO)

        LoggingObserver().on_error(FailureStage.READ_BACK, "req-1", ValueError("already finished"))

        (log_record,) = caplog.records
        assert log_record.levelno == logging.WARNING


class TestBuildServices:
    """Test wiring services from settings."""

    def test_inline_mode(self, redis_client):
        services = build_services(make_settings(), redis_client=redis_client)

        assert isinstance(services.store, RedisRecordStore)
        assert isinstance(services.dispatcher, InlineDispatcher)
        assert services.channel is None
        with pytest.raises(ValueError):
            services.worker()
        services.close()

    def test_pubsub_mode(self, redis_client):
        services = build_services(make_settings(DISPATCH_MODE="pubsub"), redis_client=redis_client)

        assert isinstance(services.dispatcher, ChannelDispatcher)
        assert isinstance(services.channel, RedisPubSubChannel)
        assert services.worker().channel is services.channel

    def test_stream_mode(self, redis_client):
        settings = make_settings(DISPATCH_MODE="stream", WORKER_CONSUMER_NAME="c-1")
        services = build_services(settings, redis_client=redis_client)

        assert isinstance(services.channel, RedisStreamChannel)
        assert services.channel.consumer_name == "c-1"
        assert services.channel.group_name == settings.STREAM_GROUP

    def test_processor_from_settings(self, redis_client):
        services = build_services(make_settings(PROCESSOR="uppercase"), redis_client=redis_client)

        assert isinstance(services.processor, UppercaseProcessor)
        services.close()

    def test_inline_round_trip(self, store):
        """Test that a submission is finished by the inline pool."""
        services = build_services(make_settings(PROCESSOR="uppercase"), store=store)

        result = services.submission.submit(SubmitRequest(payload="x"))
        services.close(wait=True)

        poll_result = services.poll.poll(result.request_id)
        assert poll_result.is_request_finished is True
        assert poll_result.response_payload == "X"

    def test_inline_channel_rejected(self, redis_client):
        with pytest.raises(ValueError):
            build_channel(make_settings(), redis_client)
