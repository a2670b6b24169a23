"""
Processors

Business logic plugged into the worker. A processor is selected by built-in
name or by import path ("package.module:attribute").
"""

import importlib
import logging

from correlation.processors.base import ProcessingOutcome, ProcessingRequest, Processor
from correlation.processors.builtin import EchoProcessor, FailingProcessor, UppercaseProcessor

logger = logging.getLogger(__name__)

BUILTIN_PROCESSORS: dict[str, type[Processor]] = {
    EchoProcessor.name: EchoProcessor,
    UppercaseProcessor.name: UppercaseProcessor,
    FailingProcessor.name: FailingProcessor,
}


def load_processor(name_or_path: str) -> Processor:
    """
    Get a processor instance.

    Args:
        name_or_path: Built-in name, or "module:attribute" where attribute is
            a Processor subclass, a Processor instance or a zero-argument factory

    Returns:
        Processor instance

    Raises:
        ValueError: If the processor cannot be resolved
    """
    if name_or_path in BUILTIN_PROCESSORS:
        return BUILTIN_PROCESSORS[name_or_path]()

    module_name, sep, attr = name_or_path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(
            f"Unknown processor '{name_or_path}'. "
            f"Use one of {sorted(BUILTIN_PROCESSORS)} or 'module:attribute'"
        )

    try:
        module = importlib.import_module(module_name)
        target = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Cannot load processor '{name_or_path}': {e}") from e

    processor = target if isinstance(target, Processor) else target()
    if not isinstance(processor, Processor):
        raise ValueError(f"'{name_or_path}' did not produce a Processor")

    logger.info(f"Loaded processor {name_or_path}")
    return processor


__all__ = [
    "BUILTIN_PROCESSORS",
    "EchoProcessor",
    "FailingProcessor",
    "ProcessingOutcome",
    "ProcessingRequest",
    "Processor",
    "UppercaseProcessor",
    "load_processor",
]
