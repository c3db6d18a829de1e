"""
Tests for the QR payload codec.
"""

import json
import pytest
import jwt

from tickets_service.core.exceptions import InvalidPayloadError
from tickets_service.models import Ticket
from tickets_service.services.qr_codec import QRCodec, render_svg


@pytest.fixture
def ticket():
    return Ticket(id="a1b2c3d4e5f6", event_id="evt-1", user_id="user-alice")


class TestQRCodecEncode:

    def test_encode_produces_signed_token_with_ticket_claims(self, qr_codec, ticket):
        token = qr_codec.encode(ticket)

        claims = jwt.decode(token, "test-secret-key-for-tickets-service-01", algorithms=["HS256"], issuer="tickets_service")

        assert claims["id"] == "a1b2c3d4e5f6"
        assert claims["event_id"] == "evt-1"
        assert claims["user_id"] == "user-alice"
        assert "iat" in claims

    def test_encoded_token_decodes_to_ticket_id(self, qr_codec, ticket):
        assert qr_codec.decode(qr_codec.encode(ticket)) == "a1b2c3d4e5f6"


class TestQRCodecDecode:

    def test_decode_json_envelope(self, qr_codec):
        assert qr_codec.decode(json.dumps({"id": "abc123"})) == "abc123"

    def test_decode_json_envelope_with_ticket_id_key(self, qr_codec):
        assert qr_codec.decode('{"ticket_id": "abc123"}') == "abc123"

    def test_decode_bare_id(self, qr_codec):
        assert qr_codec.decode("  T-4F9K2Q \n") == "T-4F9K2Q"

    def test_token_signed_with_other_secret_is_rejected(self, ticket):
        forged = QRCodec("other-secret-key-for-tickets-service-02").encode(ticket)

        with pytest.raises(InvalidPayloadError):
            QRCodec("test-secret-key-for-tickets-service-01").decode(forged)

    def test_token_from_other_issuer_is_rejected(self, ticket):
        token = QRCodec("test-secret-key-for-tickets-service-01", issuer="someone-else").encode(ticket)

        with pytest.raises(InvalidPayloadError):
            QRCodec("test-secret-key-for-tickets-service-01").decode(token)

    @pytest.mark.parametrize("payload", [
        None,
        "",
        "   ",
        "{not json",
        "[1, 2, 3]",
        '{"id": 42}',
        '{"name": "no id"}',
        "spaces are not ids",
        "x" * 65,
        "a.b.c",
    ])
    def test_invalid_payloads(self, qr_codec, payload):
        with pytest.raises(InvalidPayloadError):
            qr_codec.decode(payload)


class TestRenderSvg:

    def test_render_svg_returns_svg_document(self):
        image = render_svg("abc123")

        assert isinstance(image, bytes)
        assert b"<svg" in image
