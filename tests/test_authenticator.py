"""
Tests for Stripe webhook signature verification.
"""

import json
import time

import pytest
from freezegun import freeze_time

from conftest import WEBHOOK_SECRET, sign_payload
from shared.errors import AuthenticationError
from webhooks.authenticator import EventAuthenticator, VerifiedEvent


@pytest.fixture
def authenticator():
    return EventAuthenticator(WEBHOOK_SECRET, tolerance_seconds=300)


@pytest.fixture
def payload(make_event, subscription_object):
    return make_event("customer.subscription.updated", subscription_object)


class TestVerify:
    def test_accepts_valid_signature(self, authenticator, payload):
        event = authenticator.verify(payload, sign_payload(payload))

        assert isinstance(event, VerifiedEvent)
        assert event.type == "customer.subscription.updated"
        assert event.id == "evt_1"
        assert event.data_object["id"] == "sub_1"

    def test_accepts_raw_bytes(self, authenticator, payload):
        event = authenticator.verify(payload.encode("utf-8"), sign_payload(payload))

        assert event.data_object["customer"] == "cus_1"

    def test_accepts_any_timestamp_inside_window(self, authenticator, payload):
        timestamp = int(time.time()) - 299

        event = authenticator.verify(payload, sign_payload(payload, timestamp=timestamp))

        assert event.type == "customer.subscription.updated"

    def test_rejects_missing_signature(self, authenticator, payload):
        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.verify(payload, None)

        assert exc_info.value.reason == "missing_signature"

    def test_rejects_empty_signature(self, authenticator, payload):
        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.verify(payload, "")

        assert exc_info.value.reason == "missing_signature"

    def test_rejects_malformed_header(self, authenticator, payload):
        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.verify(payload, "not-a-stripe-header")

        assert exc_info.value.reason == "invalid_signature"

    def test_rejects_wrong_secret(self, authenticator, payload):
        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.verify(payload, sign_payload(payload, secret="whsec_other"))

        assert exc_info.value.reason == "invalid_signature"

    @pytest.mark.parametrize("position", [0, 10, 57, -2])
    def test_rejects_single_byte_mutation(self, authenticator, payload, position):
        signature = sign_payload(payload)
        raw = bytearray(payload.encode("utf-8"))
        raw[position] = ord("X") if raw[position] != ord("X") else ord("Y")

        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.verify(bytes(raw), signature)

        assert exc_info.value.reason == "invalid_signature"

    def test_rejects_reserialized_body(self, authenticator, payload):
        """Verification is over the exact bytes, not the JSON value."""
        signature = sign_payload(payload)
        reserialized = json.dumps(json.loads(payload), indent=2)

        with pytest.raises(AuthenticationError):
            authenticator.verify(reserialized, signature)

    def test_rejects_timestamp_outside_replay_window(self, authenticator, payload):
        signature = sign_payload(payload)

        with freeze_time(time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime(time.time() + 600))):
            with pytest.raises(AuthenticationError) as exc_info:
                authenticator.verify(payload, signature)

        assert exc_info.value.reason == "invalid_signature"

    def test_rejects_timestamp_far_in_future(self, authenticator, payload):
        ten_years = 10 * 365 * 24 * 3600
        signature = sign_payload(payload, timestamp=int(time.time()) + ten_years)

        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.verify(payload, signature)

        assert exc_info.value.reason == "invalid_signature"

    def test_accepts_small_clock_skew_ahead(self, authenticator, payload):
        signature = sign_payload(payload, timestamp=int(time.time()) + 60)

        assert authenticator.verify(payload, signature).type == "customer.subscription.updated"

    def test_rejects_non_utf8_body(self, authenticator):
        with pytest.raises(AuthenticationError):
            authenticator.verify(b"\xff\xfe", "t=1,v1=abc")

    def test_verified_non_event_body_is_invalid_payload(self, authenticator):
        payload = json.dumps({"hello": "world"})

        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.verify(payload, sign_payload(payload))

        assert exc_info.value.reason == "invalid_payload"

    def test_verified_non_json_body_is_invalid_payload(self, authenticator):
        payload = "definitely not json"

        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.verify(payload, sign_payload(payload))

        assert exc_info.value.reason == "invalid_payload"


class TestAuthenticatorConstruction:
    def test_requires_secret(self):
        with pytest.raises(ValueError):
            EventAuthenticator("")

    @pytest.mark.parametrize("tolerance", [0, -1, None])
    def test_requires_positive_tolerance(self, tolerance):
        with pytest.raises(ValueError):
            EventAuthenticator(WEBHOOK_SECRET, tolerance_seconds=tolerance)

    def test_repr_hides_secret(self, authenticator):
        assert WEBHOOK_SECRET not in repr(authenticator)
