"""Tests for built-in processors and processor loading."""

import sys
import types

import pytest

from correlation.exceptions import ProcessingError
from correlation.processors import (
    EchoProcessor,
    FailingProcessor,
    ProcessingOutcome,
    ProcessingRequest,
    Processor,
    UppercaseProcessor,
    load_processor,
)

REQUEST = ProcessingRequest(request_id="req-1", payload="Hello", created_at=0)


class CustomProcessor(Processor):
    def process(self, request):
        return ProcessingOutcome.success("custom")


@pytest.fixture
def plugin_module(monkeypatch):
    """Importable module holding user-defined processors."""
    module = types.ModuleType("acme_processors")
    module.CustomProcessor = CustomProcessor
    module.custom_instance = CustomProcessor()
    module.not_a_processor = object
    monkeypatch.setitem(sys.modules, "acme_processors", module)
    return module


class TestBuiltinProcessors:
    """Test the demo processors."""

    def test_echo(self):
        assert EchoProcessor().process(REQUEST) == ProcessingOutcome.success("Hello")

    def test_uppercase(self):
        assert UppercaseProcessor().process(REQUEST).response_payload == "HELLO"

    def test_failing(self):
        with pytest.raises(ProcessingError, match="nope"):
            FailingProcessor("nope").process(REQUEST)

    def test_outcome_constructors(self):
        assert ProcessingOutcome.success("a") == ProcessingOutcome("a", False)
        assert ProcessingOutcome.failure("b") == ProcessingOutcome("b", True)


class TestLoadProcessor:
    """Test resolving processors by name or import path."""

    @pytest.mark.parametrize(
        "name,cls",
        [("echo", EchoProcessor), ("uppercase", UppercaseProcessor), ("failing", FailingProcessor)],
    )
    def test_builtin_names(self, name, cls):
        assert isinstance(load_processor(name), cls)

    def test_import_path_class(self):
        processor = load_processor("correlation.processors.builtin:UppercaseProcessor")

        assert isinstance(processor, UppercaseProcessor)

    def test_import_path_instance(self, plugin_module):
        assert load_processor("acme_processors:custom_instance") is plugin_module.custom_instance

    def test_import_path_user_class(self, plugin_module):
        assert load_processor("acme_processors:CustomProcessor").process(REQUEST).response_payload == "custom"

    @pytest.mark.parametrize(
        "path",
        [
            "does-not-exist",
            "no.such.module:Thing",
            "correlation.processors.builtin:Missing",
            "acme_processors:not_a_processor",
        ],
    )
    def test_unresolvable(self, path, plugin_module):
        with pytest.raises(ValueError):
            load_processor(path)
