"""Redemption code and QR payload helpers."""

from __future__ import annotations

import json
import re
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from smart_rewards_api.core.clock import utcnow

CODE_PREFIX = "RDM"
CODE_PATTERN = re.compile(r"^RDM-\d+-[A-Z0-9]{6}$")
_CODE_ALPHABET = string.ascii_uppercase + string.digits
QR_PAYLOAD_TYPE = "redemption"


@dataclass
class QRParseResult:
    is_valid: bool
    code: str | None = None
    offer_id: str | None = None
    business_id: str | None = None
    timestamp: str | None = None
    error: str | None = None


def generate_redemption_code(now: datetime | None = None) -> str:
    """Return ``RDM-<epoch millis>-<6 uppercase alphanumerics>``."""

    moment = now or utcnow()
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(6))
    return f"{CODE_PREFIX}-{int(moment.timestamp() * 1000)}-{suffix}"


def is_valid_redemption_code(code: str | None) -> bool:
    return bool(code) and CODE_PATTERN.match(code) is not None


def build_qr_payload(code: str, offer_id: UUID | str, business_id: UUID | str, *, now: datetime | None = None) -> str:
    return json.dumps(
        {
            "type": QR_PAYLOAD_TYPE,
            "code": code,
            "offerId": str(offer_id),
            "businessId": str(business_id),
            "timestamp": (now or utcnow()).isoformat(),
        }
    )


def parse_qr_payload(data: str) -> QRParseResult:
    try:
        payload = json.loads(data)
    except (TypeError, ValueError):
        return QRParseResult(is_valid=False, error="QR payload is not valid JSON")
    if not isinstance(payload, dict) or payload.get("type") != QR_PAYLOAD_TYPE:
        return QRParseResult(is_valid=False, error="QR payload is not a redemption code")
    code = payload.get("code")
    if not is_valid_redemption_code(code):
        return QRParseResult(is_valid=False, error="Malformed redemption code")
    return QRParseResult(
        is_valid=True,
        code=code,
        offer_id=payload.get("offerId"),
        business_id=payload.get("businessId"),
        timestamp=payload.get("timestamp"),
    )
