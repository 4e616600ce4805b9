"""Tests for type reflection: describe(), markers and constructor shapes."""

import collections.abc as abc
from typing import Annotated, Any, ClassVar, Final, Optional, final

import pytest
from content_map import (
    Cache,
    ConstructorShape,
    ContentSource,
    ConversionHandler,
    ConversionPhase,
    Ignore,
    InvalidConversionSetupError,
    Lazy,
    Property,
    describe,
    handled_by,
    on_converted,
    on_converting,
    with_processors,
)
from content_map.metadata import concrete_collection_type, element_type_of, runtime_type, type_processors


class Handler(ConversionHandler):
    pass


class Base:
    title: str
    _private: str
    kind: ClassVar[str] = "base"

    @property
    def computed(self) -> str:
        return "read-only"


@handled_by(Handler)
@Cache(duration=30)
class Derived(Base):
    body: Annotated[str, Property("bodyText"), Lazy()]
    rating: Optional[int]
    tags: list[str]
    skipped: Annotated[str, Ignore()]
    sealed: Final[str]
    computed: str

    @on_converting
    def prepare(self, ctx):
        pass

    @on_converted
    def finish(self, ctx):
        pass


class Unresolvable:
    child: "DoesNotExist"  # noqa: F821


class WithContentArg:
    def __init__(self, content: ContentSource):
        self.content = content


class WithStringAnnotation:
    def __init__(self, content: "ContentSource"):
        self.content = content


class WithKeywordOnly:
    def __init__(self, *, content: ContentSource):
        self.content = content


class WithVarArgs:
    def __init__(self, *args, **kwargs):
        pass


class TestDescribe:
    """Test property discovery."""

    def test_properties_in_declaration_order(self):
        """Base class properties come first, in declaration order."""
        names = [p.name for p in describe(Derived).properties]

        assert names == ["title", "body", "rating", "tags", "skipped", "sealed"]

    def test_skips_private_classvar_and_read_only(self):
        """Private names, ClassVars and setter-less properties are not populated."""
        names = {p.name for p in describe(Derived).properties}

        assert "_private" not in names
        assert "kind" not in names
        assert "computed" not in names

    def test_property_flags(self):
        """Markers and type wrappers are reflected on the descriptor."""
        props = {p.name: p for p in describe(Derived).properties}

        assert props["title"].declaring_type is Base
        assert props["body"].lazy
        assert isinstance(props["body"].processors[0], Property)
        assert props["rating"].nullable
        assert props["rating"].property_type is int
        assert props["tags"].enumerable
        assert props["tags"].element_type is str
        assert props["skipped"].ignore
        assert not props["sealed"].overridable
        assert props["title"].overridable

    def test_type_level_directives(self):
        """Cache, handlers and hooks are collected on the type descriptor."""
        descriptor = describe(Derived)

        assert descriptor.cache.duration == 30
        assert descriptor.handler_types == (Handler,)
        assert descriptor.hooks_for(ConversionPhase.CONVERTING) == ("prepare",)
        assert descriptor.hooks_for(ConversionPhase.CONVERTED) == ("finish",)
        assert [p.name for p in descriptor.lazy_properties] == ["body"]

    def test_descriptor_cached(self):
        """describe() returns the same descriptor on every call."""
        assert describe(Derived) is describe(Derived)

    def test_final_class_properties_not_overridable(self):
        """Every property of a @final class is non-overridable."""

        @final
        class Sealed:
            title: str

        assert not describe(Sealed).properties[0].overridable

    def test_unresolvable_annotation(self):
        """Forward references that cannot be resolved are a setup error."""
        with pytest.raises(InvalidConversionSetupError, match="Unresolvable"):
            describe(Unresolvable)


class TestConstructorShape:
    """Test constructor classification."""

    @pytest.mark.parametrize(
        "model, shape",
        [
            (Base, ConstructorShape.NO_ARGS),
            (WithVarArgs, ConstructorShape.NO_ARGS),
            (WithContentArg, ConstructorShape.CONTENT_ARG),
            (WithStringAnnotation, ConstructorShape.CONTENT_ARG),
            (WithKeywordOnly, ConstructorShape.INVALID),
        ],
    )
    def test_shapes(self, model, shape):
        """Constructors are classified without instantiating the type."""
        assert describe(model).constructor is shape


class TestTypeHelpers:
    """Test the annotation helpers."""

    @pytest.mark.parametrize(
        "tp, expected",
        [
            (list[str], str),
            (abc.Sequence[int], int),
            (tuple[str, ...], str),
            (tuple[str, int], None),
            (set[Annotated[str, Ignore()]], str),
            (dict[str, str], None),
            (str, None),
            (list, None),
        ],
    )
    def test_element_type_of(self, tp, expected):
        """Only enumerable-of-T annotations have an element type."""
        assert element_type_of(tp) is expected

    @pytest.mark.parametrize(
        "tp, expected",
        [
            (list[str], list),
            (abc.Iterable[str], list),
            (abc.MutableSet[str], set),
            (frozenset[str], frozenset),
            (tuple[str, ...], tuple),
        ],
    )
    def test_concrete_collection_type(self, tp, expected):
        """Abstract collection annotations map to concrete classes."""
        assert concrete_collection_type(tp) is expected

    def test_runtime_type(self):
        """Generic aliases resolve to their origin; other forms to object."""
        assert runtime_type(list[str]) is list
        assert runtime_type(int) is int
        assert runtime_type(Any) is object


class TestDeclarations:
    """Test decorators and markers."""

    def test_with_processors_accumulates(self):
        """Repeated with_processors calls append to the type's processors."""
        first, second = Property("a"), Property("b")

        @with_processors(second)
        @with_processors(first)
        class Target:
            pass

        assert type_processors(Target) == (first, second)
        assert type_processors(list[Target]) == ()

    def test_with_processors_rejects_non_processors(self):
        """Only Processor instances are accepted."""
        with pytest.raises(TypeError):
            with_processors("not a processor")

    def test_lazy_class_decorator(self):
        """@Lazy() marks every overridable property lazy."""

        @Lazy()
        class AllLazy:
            title: str
            fixed: Final[str]

        props = {p.name: p for p in describe(AllLazy).properties}

        assert props["title"].lazy
        assert not props["fixed"].lazy

    def test_hooks_are_decorated_in_place(self):
        """Hook decorators return the function itself."""

        def hook(self, ctx):
            pass

        assert on_converted(hook) is hook
