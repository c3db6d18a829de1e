"""
QR payload codec for Tickets Service.
Tickets carry a signed token in their QR image; scanners may also submit a
JSON envelope or a bare ticket id printed on older tickets.
"""

import io
import json
import re
import time
from typing import Any, Dict, Optional
import logging

import jwt
import qrcode
import qrcode.image.svg

from tickets_service.core.config import TicketsConfig, config
from tickets_service.core.exceptions import InvalidPayloadError
from tickets_service.models import Ticket

logger = logging.getLogger(__name__)

TICKET_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")


class QRCodec:
    """
    Encodes ticket references into QR payloads and decodes scanned payloads.
    """

    def __init__(self, signing_secret: str, algorithm: str = "HS256", issuer: str = "tickets_service"):
        self.signing_secret = signing_secret
        self.algorithm = algorithm
        self.issuer = issuer

    @classmethod
    async def from_config(cls, settings: Optional[TicketsConfig] = None) -> "QRCodec":
        qr_config = await (settings or config).get_qr_config()
        return cls(
            signing_secret=qr_config["signing_secret"],
            algorithm=qr_config["algorithm"],
            issuer=qr_config["issuer"]
        )

    def encode(self, ticket: Ticket) -> str:
        """
        Build the signed QR payload for a ticket.

        Args:
            ticket: Ticket with its store-assigned id

        Returns:
            Signed token embedding the ticket id, event id, user id and issue time
        """
        payload = {
            "id": ticket.id,
            "event_id": ticket.event_id,
            "user_id": ticket.user_id,
            "iat": int(time.time()),
            "iss": self.issuer,
        }
        return jwt.encode(payload, self.signing_secret, algorithm=self.algorithm)

    def decode(self, raw_payload: Optional[str]) -> str:
        """
        Extract a ticket reference from scanned QR text.

        Args:
            raw_payload: Text read from the QR image

        Returns:
            Ticket id or legacy placeholder id

        Raises:
            InvalidPayloadError: If the payload is not a ticket reference
        """
        if not isinstance(raw_payload, str) or not raw_payload.strip():
            raise InvalidPayloadError()

        text = raw_payload.strip()

        if text.startswith("{"):
            return self._decode_envelope(text)

        if text.count(".") == 2:
            return self._decode_token(text)

        if TICKET_ID_PATTERN.fullmatch(text):
            return text

        raise InvalidPayloadError()

    def _decode_token(self, token: str) -> str:
        try:
            claims = jwt.decode(
                token,
                self.signing_secret,
                algorithms=[self.algorithm],
                issuer=self.issuer
            )
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected QR token: {e}")
            raise InvalidPayloadError()

        return self._reference_from(claims)

    def _decode_envelope(self, text: str) -> str:
        try:
            envelope = json.loads(text)
        except json.JSONDecodeError:
            raise InvalidPayloadError()

        if not isinstance(envelope, dict):
            raise InvalidPayloadError()
        return self._reference_from(envelope)

    def _reference_from(self, data: Dict[str, Any]) -> str:
        reference = data.get("id") or data.get("ticket_id")
        if not isinstance(reference, str) or not TICKET_ID_PATTERN.fullmatch(reference):
            raise InvalidPayloadError()
        return reference


def render_svg(data: str) -> bytes:
    """Render QR payload text as an SVG image."""
    image = qrcode.make(data, image_factory=qrcode.image.svg.SvgPathImage)
    buffer = io.BytesIO()
    image.save(buffer)
    return buffer.getvalue()
