"""
QR check-in for bookings.

A booking's token can be verified exactly once. Later scans of the same
token report the original verification instead of failing, so a retried
request or a double camera read never double-counts a visit.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import transaction
from ..models.base import utc_now
from ..models.booking import Booking, BookingStatus
from ..models.booking_history import BookingHistory, BookingAction
from ..schemas.common import Actor
from ..schemas.verification import BookingSummary, VerificationOutcome
from ..utils.exceptions import (
    AuthorizationError,
    BookingCancelledError,
    InvalidBookingStateError,
    TokenNotFoundError,
)
from ..utils.logging_config import log_business_event, log_security_event

logger = logging.getLogger(__name__)

TOKEN_KEYS = ("qrCode", "qr_token", "token")


@dataclass(frozen=True)
class BareToken:
    """Scanner output that is the token itself."""
    token: str


@dataclass(frozen=True)
class StructuredPayload:
    """The JSON document printed on a ticket."""
    kind: str
    token: str


RawCredential = Union[BareToken, StructuredPayload]


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a scan, built from the persisted booking row."""

    outcome: VerificationOutcome
    booking: Booking
    verified_at: datetime
    verified_by: str

    @property
    def is_first_verification(self) -> bool:
        return self.outcome == VerificationOutcome.VERIFIED

    @property
    def message(self) -> str:
        """Text for the door staff, naming who checked the booking in and when."""
        checked_in_at = self.verified_at.strftime("%Y-%m-%d %H:%M UTC")
        if self.is_first_verification:
            return f"Checked in {self.booking.customer_name} at {checked_in_at}"
        return f"Already checked in at {checked_in_at} by {self.verified_by}"


def parse_credential(raw: Optional[str]) -> RawCredential:
    """
    Normalize scanner output into a credential.

    A JSON object carrying a token under "qrCode" (or "qr_token"/"token") is
    a structured payload; anything else is taken as a bare token.

    Raises:
        TokenNotFoundError: When the input is empty or holds no token
    """
    text = (raw or "").strip()
    if not text:
        raise TokenNotFoundError()

    if text.startswith("{"):
        try:
            document = json.loads(text)
        except ValueError:
            document = None

        if isinstance(document, dict):
            for key in TOKEN_KEYS:
                value = document.get(key)
                if isinstance(value, str) and value.strip():
                    return StructuredPayload(kind=str(document.get("type", "booking")), token=value.strip())
            raise TokenNotFoundError()

    return BareToken(token=text)


def summarize(booking: Booking) -> BookingSummary:
    return BookingSummary(
        booking_id=booking.id,
        session_id=booking.session_id,
        branch_id=booking.branch_id,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email,
        customer_phone=booking.customer_phone,
        activity=booking.activity,
        date=booking.date,
        time=booking.time,
        seats=booking.seats,
        status=booking.status,
        payment_status=booking.payment_status,
        is_verified=booking.is_verified,
    )


class VerificationService:
    """Service for checking customers in by QR code."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def verify(self, raw: Optional[str], verifier: Actor) -> VerificationResult:
        """
        Check a booking in.

        The first successful scan flips the booking to verified with a single
        conditional update; every later scan returns the stored verification
        time and verifier unchanged.

        Args:
            raw: Scanner output, bare token or JSON payload
            verifier: Staff member performing the scan

        Returns:
            VerificationResult with outcome verified or already_verified

        Raises:
            TokenNotFoundError: When no booking carries the token
            AuthorizationError: When a manager scans another branch's booking
            BookingCancelledError: When the booking was cancelled before check-in
        """
        credential = parse_credential(raw)

        async with transaction(self.session):
            booking = await self._find_by_token(credential.token)
            if not verifier.can_manage_branch(booking.branch_id):
                log_security_event(
                    "cross_branch_verification",
                    {"booking_id": str(booking.id), "verifier_id": verifier.id}
                )
                raise AuthorizationError("You can only verify bookings of your own branch")

            result = await self.session.execute(
                update(Booking)
                .where(
                    Booking.qr_token == credential.token,
                    Booking.is_verified.is_(False),
                    Booking.status == BookingStatus.ACTIVE
                )
                .values(is_verified=True, verified_at=utc_now(), verified_by=verifier.id)
                .execution_options(synchronize_session=False)
            )
            first_verification = result.rowcount == 1

            if first_verification:
                self.session.add(BookingHistory(
                    booking_id=booking.id,
                    action=BookingAction.VERIFIED,
                    details=f"Checked in {booking.seats} seat(s)",
                    performed_by=verifier.id
                ))

            booking = await self._find_by_token(credential.token)

        if first_verification:
            log_business_event(
                "booking_verified",
                {"booking_id": str(booking.id), "seats": booking.seats},
                user_id=verifier.id
            )
            logger.info(f"Booking {booking.id} verified by {verifier.id}")
            return self._result(VerificationOutcome.VERIFIED, booking)

        if booking.is_verified:
            log_business_event(
                "booking_verify_repeat",
                {"booking_id": str(booking.id), "first_verified_by": booking.verified_by},
                user_id=verifier.id
            )
            logger.info(f"Booking {booking.id} already verified at {booking.verified_at}")
            return self._result(VerificationOutcome.ALREADY_VERIFIED, booking)

        if booking.status == BookingStatus.CANCELLED:
            raise BookingCancelledError(str(booking.id))
        raise InvalidBookingStateError(str(booking.id), booking.status.value, BookingStatus.ACTIVE.value)

    async def lookup(self, raw: Optional[str], actor: Actor) -> Booking:
        """
        Resolve a scanned code to its booking without checking it in.

        Raises:
            TokenNotFoundError: When no booking carries the token
            AuthorizationError: When a manager looks up another branch's booking
        """
        credential = parse_credential(raw)
        booking = await self._find_by_token(credential.token)
        if not actor.can_manage_branch(booking.branch_id):
            raise AuthorizationError("You can only look up bookings of your own branch")
        return booking

    def _result(self, outcome: VerificationOutcome, booking: Booking) -> VerificationResult:
        return VerificationResult(
            outcome=outcome,
            booking=booking,
            verified_at=booking.verified_at,
            verified_by=booking.verified_by,
        )

    async def _find_by_token(self, token: str) -> Booking:
        result = await self.session.execute(
            select(Booking)
            .where(Booking.qr_token == token)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            logger.info("Verification attempted with unknown token")
            raise TokenNotFoundError()
        return booking
