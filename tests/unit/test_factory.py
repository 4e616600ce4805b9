"""Tests for build_default_converter wiring."""

from content_map import (
    Converter,
    HandlerRegistry,
    MemoryCache,
    NullCache,
    ProcessorRegistry,
    Property,
    ValuePipeline,
    build_default_converter,
    build_default_processor_registry,
)


class TestBuildDefaultConverter:
    """Test the assembled converter."""

    def test_defaults(self):
        """The default converter has a memory cache and the core registries."""
        converter = build_default_converter()

        assert isinstance(converter, Converter)
        assert isinstance(converter.cache, MemoryCache)
        assert isinstance(converter.processors, ProcessorRegistry)
        assert isinstance(converter.handlers, HandlerRegistry)
        assert isinstance(converter.pipeline, ValuePipeline)
        assert isinstance(converter.processors.default_for(str), Property)

    def test_custom_parts_are_used(self):
        """Pre-built registries and caches are passed through untouched."""
        cache = NullCache()
        processors = build_default_processor_registry()
        handlers = HandlerRegistry()

        converter = build_default_converter(cache=cache, processors=processors, handlers=handlers)

        assert converter.cache is cache
        assert converter.processors is processors
        assert converter.handlers is handlers
        assert converter.pipeline.cache is cache

    def test_converters_are_independent(self):
        """Each call builds fresh registries and caches."""
        a = build_default_converter()
        b = build_default_converter()

        assert a.processors is not b.processors
        assert a.cache is not b.cache
