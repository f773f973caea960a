"""
Tests for shared request helpers.
"""

import base64

import pytest

from shared.errors import InvalidRequestError
from shared.request_utils import (
    get_header,
    get_method,
    get_query_param,
    get_raw_body,
    parse_json_body,
    redirect_base,
)


class TestGetHeader:
    def test_case_insensitive(self):
        event = {"headers": {"Stripe-Signature": "t=1,v1=abc"}}

        assert get_header(event, "stripe-signature") == "t=1,v1=abc"
        assert get_header(event, "STRIPE-SIGNATURE") == "t=1,v1=abc"

    def test_missing_headers(self):
        assert get_header({"headers": None}, "origin") is None
        assert get_header({}, "origin") is None


class TestGetMethod:
    def test_rest_api_payload(self):
        assert get_method({"httpMethod": "post"}) == "POST"

    def test_http_api_payload(self):
        assert get_method({"requestContext": {"http": {"method": "GET"}}}) == "GET"

    def test_unknown(self):
        assert get_method({}) == ""


class TestGetRawBody:
    def test_text_body_is_utf8_encoded(self):
        assert get_raw_body({"body": '{"a": "é"}'}) == '{"a": "é"}'.encode("utf-8")

    def test_base64_body_is_decoded(self):
        raw = b'{"id": "evt_1"}'
        event = {"body": base64.b64encode(raw).decode("ascii"), "isBase64Encoded": True}

        assert get_raw_body(event) == raw

    def test_invalid_base64_yields_empty_body(self):
        assert get_raw_body({"body": "not base64!!", "isBase64Encoded": True}) == b""

    def test_missing_body(self):
        assert get_raw_body({"body": None}) == b""


class TestParseJsonBody:
    def test_parses_object(self):
        assert parse_json_body({"body": '{"userId": "user_42"}'}) == {"userId": "user_42"}

    def test_empty_body_is_empty_dict(self):
        assert parse_json_body({"body": None}) == {}

    @pytest.mark.parametrize("body", ["{not json", "[1, 2]", '"text"'])
    def test_rejects_non_objects(self, body):
        with pytest.raises(InvalidRequestError):
            parse_json_body({"body": body})


class TestQueryParam:
    def test_reads_param(self):
        assert get_query_param({"queryStringParameters": {"userId": "user_42"}}, "userId") == "user_42"

    def test_none_params(self):
        assert get_query_param({"queryStringParameters": None}, "userId") is None


class TestRedirectBase:
    def test_referer_reduced_to_site(self):
        event = {"headers": {"Referer": "https://nuerlo.com/pricing?plan=pro"}}

        assert redirect_base(event, "https://fallback.example") == "https://nuerlo.com"

    def test_origin_used_without_referer(self):
        event = {"headers": {"Origin": "http://localhost:8888"}}

        assert redirect_base(event, "https://fallback.example") == "http://localhost:8888"

    def test_fallback(self):
        assert redirect_base({"headers": {}}, "https://nuerlo.com/") == "https://nuerlo.com"

    def test_unparseable_referer_falls_through(self):
        event = {"headers": {"Referer": "garbage", "Origin": "https://www.nuerlo.com"}}

        assert redirect_base(event, "https://nuerlo.com") == "https://www.nuerlo.com"
