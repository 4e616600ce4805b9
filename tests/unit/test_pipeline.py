"""Tests for ValuePipeline — chain resolution, execution and normalisation."""

import collections
from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, Iterable, Optional, Sequence

import pytest
from content_map import (
    ChainContext,
    ContentSource,
    MappingSource,
    Processor,
    ProcessorContext,
    Property,
    build_default_converter,
    build_default_processor_registry,
    describe,
    with_processors,
)


class Record(Processor):
    """Append the processor's order to a list seeded on first use."""

    def __init__(self, label=None, *, order=0):
        super().__init__(order=order)
        self.label = label if label is not None else order

    def process(self, value, ctx, chain):
        seq = [] if isinstance(value, ContentSource) else list(value)
        return seq + [self.label]


class Ordered:
    steps: Annotated[list, Record(order=10), Record(order=5), Record(order=20)]


@with_processors(Record("type-b", order=2), Record("type-a", order=1))
class Badge:
    pass


class Groups:
    badge: Annotated[Badge, Record("own")]


class ElementGroups:
    badges: Annotated[list[Badge], Record("own")]


@dataclass
class PrefixContext(ProcessorContext):
    prefix: str = ""


class Prefixed(Processor):
    context_type = PrefixContext

    def process(self, value, ctx, chain):
        chain.metadata.setdefault("context_ids", []).append(id(ctx))
        return f"{ctx.prefix}{ctx.property.name}"


class PrefixModel:
    first: Annotated[str, Prefixed()]
    second: Annotated[str, Prefixed()]


class Empty(Processor):
    def process(self, value, ctx, chain):
        return ()


class Counting(Processor):
    calls = 0

    def process(self, value, ctx, chain):
        Counting.calls += 1
        return "counted"


class EmptyCollections:
    as_list: Annotated[list[str], Empty()]
    as_sequence: Annotated[Sequence[str], Empty()]
    as_iterable: Annotated[Iterable[str], Empty()]
    as_set: Annotated[set[str], Empty()]
    as_tuple: Annotated[tuple[str, ...], Empty()]
    as_deque: Annotated[collections.deque[str], Empty()]


class MissingValues:
    count: int
    ratio: float
    flag: bool
    amount: Decimal
    maybe: Optional[int]
    text: str


def _pipeline_for(converter, model, name):
    prop = next(p for p in describe(model).properties if p.name == name)
    return converter.pipeline, prop


class TestResolution:
    """Test processor chain resolution."""

    def test_orders_within_property_group(self, page_source):
        """Processors run by ascending order regardless of declaration order."""
        converter = build_default_converter()

        result = converter.convert(page_source, Ordered)

        assert result.steps == [5, 10, 20]

    def test_default_processor_when_none_declared(self, converter):
        """A property without processors gets exactly one default."""

        class Plain:
            title: str

        pipeline, prop = _pipeline_for(converter, Plain, "title")
        chain = pipeline.resolve(prop, Plain)

        assert isinstance(chain[0], Property)
        assert sum(isinstance(p, Property) for p in chain) == 1

    def test_group_precedence(self, converter):
        """Own → type → element → registry → post, each sorted internally."""
        converter.processors.register(Record("registry"), Badge)

        pipeline, prop = _pipeline_for(converter, Groups, "badge")
        chain = pipeline.resolve(prop, Groups)
        labels = [p.label for p in chain if isinstance(p, Record)]

        assert labels == ["own", "type-a", "type-b", "registry"]
        assert chain[-3:] == list(converter.processors.post_processors())

    def test_element_type_group(self, converter):
        """Element type processors join the chain for enumerable properties."""
        pipeline, prop = _pipeline_for(converter, ElementGroups, "badges")
        labels = [p.label for p in pipeline.resolve(prop, ElementGroups) if isinstance(p, Record)]

        assert labels == ["own", "type-a", "type-b"]

    def test_registered_default_by_property_type(self, page_source):
        """A registered default for the property type replaces Property()."""
        registry = build_default_processor_registry()
        registry.register_default(Record("int-default"), int)
        converter = build_default_converter(processors=registry)

        class Numbers:
            values: list[int]
            rating: int

        pipeline, prop = _pipeline_for(converter, Numbers, "values")
        assert isinstance(pipeline.resolve(prop, Numbers)[0], Property)

        pipeline, prop = _pipeline_for(converter, Numbers, "rating")
        assert pipeline.resolve(prop, Numbers)[0].label == "int-default"

    def test_registered_default_by_model_type(self):
        """Without a property-type match the model type is consulted."""
        registry = build_default_processor_registry()

        class Special:
            title: str

        registry.register_default(Record("model-default"), Special)
        converter = build_default_converter(processors=registry)

        pipeline, prop = _pipeline_for(converter, Special, "title")

        assert pipeline.resolve(prop, Special)[0].label == "model-default"


class TestExecution:
    """Test running the chain."""

    def test_seed_value_is_content_source(self, converter, page_source):
        """The first processor receives the source itself."""
        seen = []

        class Spy(Processor):
            def process(self, value, ctx, chain):
                seen.append(value)
                return "x"

        class Spied:
            title: Annotated[str, Spy()]

        converter.convert(page_source, Spied)

        assert seen == [page_source]

    def test_context_created_once_per_chain(self, converter, page_source):
        """One context instance per context type is shared across properties."""
        chain = ChainContext()

        model = converter.convert(page_source, PrefixModel, chain_context=chain)

        ids = chain.metadata["context_ids"]
        assert len(ids) == 2
        assert ids[0] == ids[1]
        assert model.first == "first"
        assert model.second == "second"

    def test_context_populated_with_current_property(self, converter, page_source):
        """A caller-supplied context is re-populated for each property."""
        context = PrefixContext(prefix="p:")

        model = converter.convert(page_source, PrefixModel, processor_contexts=[context])

        assert model.first == "p:first"
        assert model.second == "p:second"
        assert context.content is page_source
        assert context.property.name == "second"


class TestNormalisation:
    """Test post-pipeline normalisation."""

    def test_empty_sequences_match_declared_type(self, converter, page_source):
        """Empty results become empty instances of the declared collection type."""
        model = converter.convert(page_source, EmptyCollections)

        assert model.as_list == [] and type(model.as_list) is list
        assert model.as_sequence == [] and type(model.as_sequence) is list
        assert model.as_iterable == [] and type(model.as_iterable) is list
        assert model.as_set == set() and type(model.as_set) is set
        assert model.as_tuple == () and type(model.as_tuple) is tuple
        assert type(model.as_deque) is collections.deque and len(model.as_deque) == 0

    def test_missing_tags_become_empty_list(self, converter):
        """A missing enumerable field yields an empty list, not None."""

        class Tagged:
            tags: list[str]

        model = converter.convert(MappingSource(1, "page", {}), Tagged)

        assert model.tags == []

    def test_value_type_defaults(self, converter):
        """None for non-optional value types becomes the type's default."""
        model = converter.convert(MappingSource(1, "page", {}), MissingValues)

        assert model.count == 0
        assert model.ratio == 0.0
        assert model.flag is False
        assert model.amount == Decimal("0")
        assert model.maybe is None
        assert model.text is None


class TestPropertyCache:
    """Test the property-level cache directive."""

    def test_cached_property_computed_once(self, page_source):
        """A Cache marker memoises the property across conversions."""
        from content_map import Cache

        class CachedModel:
            value: Annotated[str, Counting(), Cache()]

        Counting.calls = 0
        converter = build_default_converter()

        first = converter.convert(page_source, CachedModel)
        second = converter.convert(page_source, CachedModel)

        assert first.value == second.value == "counted"
        assert Counting.calls == 1

    @pytest.mark.parametrize("version", [8, 9])
    def test_new_version_recomputes(self, page_source, version):
        """A different source version misses the property cache."""
        from content_map import Cache

        class CachedModel:
            value: Annotated[str, Counting(), Cache()]

        Counting.calls = 0
        converter = build_default_converter()
        converter.convert(page_source, CachedModel)
        bumped = MappingSource(page_source.id, page_source.source_type, {}, version=version)
        converter.convert(bumped, CachedModel)

        assert Counting.calls == 2
