"""Offer redemption exports."""

from .codes import (  # noqa: F401
    QRParseResult,
    build_qr_payload,
    generate_redemption_code,
    is_valid_redemption_code,
    parse_qr_payload,
)
from .redemption_service import RedemptionReceipt, RedemptionService, VerifiedRedemption  # noqa: F401
