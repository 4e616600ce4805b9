"""pytest configuration and shared fixtures."""

import pytest
from content_map import MappingSource, build_default_converter


@pytest.fixture
def converter():
    """Default converter with a fresh in-memory cache."""
    return build_default_converter()


@pytest.fixture
def home_source():
    """Root record used as the parent of ``page_source``."""
    return MappingSource(
        1,
        "home",
        {
            "title": "Home",
            "footer": "(c) ACME",
        },
    )


@pytest.fixture
def page_source(home_source):
    """Sample page record."""
    return MappingSource(
        42,
        "page",
        {
            "title": "Hello",
            "bodyText": "<p>Body</p>",
            "summary": "",
            "tags": "news, python ,mapping",
            "rating": "4",
            "price": "9.95",
            "published": "true",
            "links": '[{"url": "https://a.example", "label": "A"}, {"url": "https://b.example", "label": "B"}]',
        },
        version=7,
        parent=home_source,
    )
