import json

import pytest
from pydantic import ValidationError

from conftest import diag
from w3c_batch.core.events import (
    Cancelled,
    PageDone,
    SitemapIndexResolved,
    StreamEnd,
    TERMINAL_TYPES,
    parse_event,
)
from w3c_batch.core.models import MessageKind, PageStatus, ValidationParams


def test_wire_form_is_camel_case():
    event = PageDone(
        index=2,
        url="https://example.com/",
        status=PageStatus.FAILED,
        duration=120,
        error_message="timeout",
    )

    data = json.loads(event.to_wire())

    assert data == {
        "type": "page_done",
        "index": 2,
        "url": "https://example.com/",
        "status": "failed",
        "messages": [],
        "duration": 120,
        "errorMessage": "timeout",
    }


def test_unset_optional_fields_are_omitted():
    event = PageDone(
        index=0,
        url="https://example.com/",
        status=PageStatus.WARNINGS,
        messages=[diag(MessageKind.WARNING, "Heads up")],
        duration=5,
    )

    data = json.loads(event.to_wire())

    assert "errorMessage" not in data
    assert data["messages"] == [{"kind": "warning", "text": "Heads up"}]


def test_parse_event_picks_concrete_type():
    event = parse_event('{"type": "sitemapindex_resolved", "totalUrls": 7}')

    assert isinstance(event, SitemapIndexResolved)
    assert event.total_urls == 7


def test_parse_event_from_dict():
    assert isinstance(parse_event({"type": "cancelled"}), Cancelled)
    assert isinstance(parse_event(StreamEnd().to_wire()), StreamEnd)


def test_parse_event_rejects_unknown_type():
    with pytest.raises(ValidationError):
        parse_event({"type": "page_exploded"})


def test_terminal_types():
    assert TERMINAL_TYPES == {"sitemap_error", "cancelled", "done", "error"}


class TestValidationParams:
    def test_defaults(self):
        params = ValidationParams.model_validate({"sitemapXml": "<urlset/>"})

        assert params.base_url is None
        assert params.concurrency == 1
        assert params.inter_task_delay_ms == 1000

    def test_short_names(self):
        params = ValidationParams.model_validate(
            {"xml": "<urlset/>", "base": "http://localhost:3000", "delay": 250}
        )

        assert params.sitemap_xml == "<urlset/>"
        assert params.base_url == "http://localhost:3000"
        assert params.inter_task_delay_ms == 250

    @pytest.mark.parametrize("payload", [
        {"xml": ""},
        {"xml": "<urlset/>", "concurrency": 0},
        {"xml": "<urlset/>", "delay": -1},
        {"base": "http://localhost"},
    ])
    def test_rejects_invalid(self, payload):
        with pytest.raises(ValidationError):
            ValidationParams.model_validate(payload)
