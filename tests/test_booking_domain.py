"""
Тесты для доменной модели контекста бронирования.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from reservation_engine.booking.domain import (
    AvailabilityChecker,
    Booking,
    BookingStatus,
    RejectionReason,
)
from reservation_engine.booking.infrastructure import InMemoryBookingRepository


def stay(guest: str, unit: str, check_in: str, nights: int) -> Booking:
    return Booking.propose(
        guest_name=guest,
        unit_id=unit,
        check_in_date=date.fromisoformat(check_in),
        number_of_nights=nights,
    )


class TestBooking:
    """Тесты для сущности Booking."""

    def test_propose_creates_candidate_without_id(self):
        booking = stay("G1", "U1", "2024-01-01", 4)

        assert booking.id is None
        assert booking.status == BookingStatus.PROPOSED
        assert booking.check_out_date == date(2024, 1, 5)
        assert booking.interval.nights == 4

    def test_identifiers_are_stripped(self):
        booking = stay("  G1 ", " U1", "2024-01-01", 1)

        assert booking.guest_name == "G1"
        assert booking.unit_id == "U1"

    @pytest.mark.parametrize(
        "guest, unit, nights",
        [("", "U1", 1), ("G1", "   ", 1), ("G1", "U1", 0), ("G1", "U1", -3)],
    )
    def test_invalid_booking_is_rejected(self, guest, unit, nights):
        with pytest.raises(ValidationError):
            stay(guest, unit, "2024-01-01", nights)

    def test_check_out_past_last_date_is_rejected(self):
        with pytest.raises(ValidationError, match="допустимый диапазон"):
            Booking.propose("G1", "U1", date(9999, 12, 31), 1)

    def test_extension_past_last_date_is_rejected(self):
        booking = stay("G1", "U1", "2024-01-01", 2).confirmed(1)

        with pytest.raises(ValidationError):
            booking.extended_to(3_000_000)

    def test_confirmed_assigns_id_and_status(self):
        booking = stay("G1", "U1", "2024-01-01", 2).confirmed(10)

        assert booking.id == 10
        assert booking.is_confirmed

    def test_extended_to_keeps_identity_and_check_in(self):
        booking = stay("G1", "U1", "2024-01-01", 2).confirmed(3)

        extended = booking.extended_to(4)

        assert extended.id == 3
        assert extended.check_in_date == date(2024, 1, 1)
        assert extended.number_of_nights == 4
        assert extended.check_out_date == date(2024, 1, 5)
        assert extended.status == BookingStatus.PROPOSED
        # Исходная бронь не меняется
        assert booking.number_of_nights == 2
        assert booking.is_confirmed


@pytest.fixture
def checker_repo() -> InMemoryBookingRepository:
    repo = InMemoryBookingRepository()
    repo.insert(stay("G1", "U1", "2024-01-01", 4))  # id=1, 01..05
    repo.insert(stay("G2", "U2", "2024-01-10", 3))  # id=2, 10..13
    return repo


class TestAvailabilityChecker:
    """Тесты для доменного сервиса проверки доступности."""

    def test_overlap_on_same_unit_is_unit_occupied(self, checker_repo):
        checker = AvailabilityChecker(checker_repo)

        verdict = checker.check_availability(stay("G3", "U1", "2024-01-04", 2))

        assert not verdict.admit
        assert verdict.reason == RejectionReason.UNIT_OCCUPIED
        assert verdict.conflicting_id == 1

    def test_touching_boundary_is_admitted(self, checker_repo):
        checker = AvailabilityChecker(checker_repo)

        verdict = checker.check_availability(stay("G3", "U1", "2024-01-05", 2))

        assert verdict.admit
        assert verdict.reason is None

    def test_other_booking_on_unit_not_overlapping_is_admitted(self, checker_repo):
        # Существование брони на юните само по себе не мешает допуску
        checker = AvailabilityChecker(checker_repo)

        verdict = checker.check_availability(stay("G3", "U1", "2024-02-01", 7))

        assert verdict.admit

    def test_guest_in_other_unit_at_same_time_is_double_booked(self, checker_repo):
        checker = AvailabilityChecker(checker_repo)

        verdict = checker.check_availability(stay("G2", "U3", "2024-01-12", 2))

        assert not verdict.admit
        assert verdict.reason == RejectionReason.GUEST_DOUBLE_BOOKED
        assert verdict.conflicting_id == 2

    def test_unit_check_runs_before_guest_check(self, checker_repo):
        checker = AvailabilityChecker(checker_repo)

        verdict = checker.check_availability(stay("G2", "U1", "2024-01-02", 10))

        assert verdict.reason == RejectionReason.UNIT_OCCUPIED

    def test_same_guest_later_stay_on_same_unit_is_admitted(self, checker_repo):
        checker = AvailabilityChecker(checker_repo)

        verdict = checker.check_availability(stay("G1", "U1", "2024-03-01", 2))

        assert verdict.admit

    def test_every_booking_is_examined_not_only_the_first(self, checker_repo):
        checker_repo.insert(stay("G4", "U1", "2024-01-20", 2))  # id=3
        checker = AvailabilityChecker(checker_repo)

        verdict = checker.check_availability(stay("G5", "U1", "2024-01-21", 1))

        assert verdict.reason == RejectionReason.UNIT_OCCUPIED
        assert verdict.conflicting_id == 3

    def test_excluded_booking_is_ignored(self, checker_repo):
        checker = AvailabilityChecker(checker_repo)
        existing = checker_repo.get_by_id(1)

        verdict = checker.check_availability(existing.extended_to(6), excluding_id=1)

        assert verdict.admit
