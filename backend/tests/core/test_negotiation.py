"""Content Negotiation — tests for Accept header parsing.

Tests cover:
    - Missing header and */* fall back to the default
    - q-values reorder candidates; equal q keeps header order
    - Unknown media types are skipped
"""

from hyperroute.core.domain_types import MediaType
from hyperroute.core.negotiation import parse_accept_header


def test_missing_header_uses_default():
    assert parse_accept_header(None) is MediaType.JSON
    assert parse_accept_header("", MediaType.HAL) is MediaType.HAL


def test_exact_types_are_selected():
    assert parse_accept_header("application/hal+json") is MediaType.HAL
    assert parse_accept_header("text/html") is MediaType.HTML
    assert parse_accept_header("application/json") is MediaType.JSON


def test_wildcard_maps_to_default():
    assert parse_accept_header("*/*") is MediaType.JSON
    assert parse_accept_header("*/*", MediaType.HTML) is MediaType.HTML


def test_quality_values_reorder_candidates():
    header = "text/html;q=0.5, application/hal+json;q=0.9"
    assert parse_accept_header(header) is MediaType.HAL


def test_equal_quality_keeps_header_order():
    assert parse_accept_header("text/html, application/json") is MediaType.HTML


def test_browser_accept_header_prefers_html():
    header = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
    assert parse_accept_header(header) is MediaType.HTML


def test_unknown_types_are_skipped():
    assert parse_accept_header("image/png, application/hal+json;q=0.1") is MediaType.HAL
    assert parse_accept_header("image/png") is MediaType.JSON


def test_zero_quality_is_not_acceptable():
    assert parse_accept_header("text/html;q=0, application/json;q=0.2") is MediaType.JSON


def test_malformed_quality_is_treated_as_zero():
    assert parse_accept_header("text/html;q=abc, application/hal+json") is MediaType.HAL
