"""
Tests for QR check-in: credential parsing and verify-once semantics.
"""

import asyncio
import json

import pytest
from sqlalchemy import select

from artgram_booking_platform.models import BookingAction, BookingHistory
from artgram_booking_platform.schemas.verification import VerificationOutcome
from artgram_booking_platform.services.booking_service import BookingService
from artgram_booking_platform.services.verification_service import (
    BareToken,
    StructuredPayload,
    VerificationService,
    parse_credential,
)
from artgram_booking_platform.utils.exceptions import (
    AuthorizationError,
    BookingCancelledError,
    TokenNotFoundError,
)


class TestParseCredential:

    def test_bare_token(self):
        assert parse_credential("QR-1700000000000-abc123") == BareToken(token="QR-1700000000000-abc123")

    def test_bare_token_is_trimmed(self):
        assert parse_credential("  QR-1-x \n").token == "QR-1-x"

    def test_structured_payload(self):
        raw = json.dumps({"type": "booking", "qrCode": "QR-1-x", "bookingId": "b-1"})

        assert parse_credential(raw) == StructuredPayload(kind="booking", token="QR-1-x")

    @pytest.mark.parametrize("key", ["qrCode", "qr_token", "token"])
    def test_structured_payload_token_keys(self, key):
        assert parse_credential(json.dumps({key: "QR-2-y"})).token == "QR-2-y"

    def test_payload_without_token(self):
        with pytest.raises(TokenNotFoundError):
            parse_credential(json.dumps({"type": "booking", "bookingId": "b-1"}))

    def test_malformed_json_is_a_bare_token(self):
        assert parse_credential("{not json").token == "{not json"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_input(self, raw):
        with pytest.raises(TokenNotFoundError):
            parse_credential(raw)


async def book(db, activity_session, customer, seats=2):
    booking, qr_payload = await BookingService(db).create_booking(activity_session.id, seats, customer)
    return booking, qr_payload


@pytest.mark.asyncio
class TestVerify:

    async def test_second_scan_reports_first_verification(self, db, activity_session, customer, manager, admin):
        booking, _ = await book(db, activity_session, customer)
        service = VerificationService(db)

        first = await service.verify(booking.qr_token, manager)
        second = await service.verify(booking.qr_token, admin)

        assert first.outcome == VerificationOutcome.VERIFIED
        assert first.is_first_verification
        assert second.outcome == VerificationOutcome.ALREADY_VERIFIED
        assert second.verified_at == first.verified_at
        assert second.verified_by == first.verified_by == manager.id
        assert second.booking.is_verified
        checked_in_at = first.verified_at.strftime("%Y-%m-%d %H:%M UTC")
        assert first.message == f"Checked in {booking.customer_name} at {checked_in_at}"
        assert second.message == f"Already checked in at {checked_in_at} by {manager.id}"

    async def test_json_payload_and_bare_token_hit_same_booking(self, db, activity_session, customer, manager):
        booking, qr_payload = await book(db, activity_session, customer)
        service = VerificationService(db)

        first = await service.verify(qr_payload, manager)
        second = await service.verify(booking.qr_token, manager)

        assert first.booking.id == second.booking.id == booking.id
        assert second.outcome == VerificationOutcome.ALREADY_VERIFIED

    async def test_history_written_once(self, db, activity_session, customer, manager):
        booking, _ = await book(db, activity_session, customer)
        service = VerificationService(db)

        await service.verify(booking.qr_token, manager)
        await service.verify(booking.qr_token, manager)

        result = await db.execute(
            select(BookingHistory).where(
                BookingHistory.booking_id == booking.id,
                BookingHistory.action == BookingAction.VERIFIED
            )
        )
        assert len(result.scalars().all()) == 1

    async def test_unknown_token(self, db, manager):
        with pytest.raises(TokenNotFoundError) as exc_info:
            await VerificationService(db).verify("QR-0-doesnotexist", manager)
        assert exc_info.value.message == "Invalid QR code"

    async def test_cancelled_booking_is_refused(self, db, activity_session, customer, manager):
        booking, _ = await book(db, activity_session, customer)
        await BookingService(db).cancel_booking(booking.id, customer)

        with pytest.raises(BookingCancelledError):
            await VerificationService(db).verify(booking.qr_token, manager)

    async def test_verified_then_cancelled_still_reports_verification(
        self, db, activity_session, customer, manager
    ):
        booking, _ = await book(db, activity_session, customer)
        service = VerificationService(db)
        first = await service.verify(booking.qr_token, manager)
        await BookingService(db).cancel_booking(booking.id, manager)

        again = await service.verify(booking.qr_token, manager)

        assert again.outcome == VerificationOutcome.ALREADY_VERIFIED
        assert again.verified_at == first.verified_at

    async def test_manager_of_other_branch_is_refused(self, db, activity_session, customer, other_manager):
        booking, _ = await book(db, activity_session, customer)
        booking_id, qr_token = booking.id, booking.qr_token

        with pytest.raises(AuthorizationError):
            await VerificationService(db).verify(qr_token, other_manager)

        refreshed = await BookingService(db).get_booking(booking_id, customer)
        assert refreshed.is_verified is False

    async def test_concurrent_scans_verify_once(self, session_factory, activity_session, customer, manager, admin):
        async with session_factory() as db:
            booking, _ = await book(db, activity_session, customer)

        async def scan(verifier):
            async with session_factory() as db:
                return await VerificationService(db).verify(booking.qr_token, verifier)

        results = await asyncio.gather(scan(manager), scan(admin))

        outcomes = sorted(r.outcome.value for r in results)
        assert outcomes == ["already_verified", "verified"]
        assert results[0].verified_at == results[1].verified_at
        assert results[0].verified_by == results[1].verified_by


@pytest.mark.asyncio
class TestLookup:

    async def test_lookup_does_not_verify(self, db, activity_session, customer, manager):
        booking, qr_payload = await book(db, activity_session, customer)

        found = await VerificationService(db).lookup(qr_payload, manager)

        assert found.id == booking.id
        assert found.is_verified is False

    async def test_lookup_scope(self, db, activity_session, customer, other_manager):
        booking, _ = await book(db, activity_session, customer)

        with pytest.raises(AuthorizationError):
            await VerificationService(db).lookup(booking.qr_token, other_manager)
