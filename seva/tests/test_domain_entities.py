from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from conftest import make_user
from seva.domain.donations.entities import (
    DonationIntent,
    DonationStatus,
    DonorDetails,
    Frequency,
    Receipt,
    from_paise,
    to_paise,
)
from seva.domain.exceptions import InvariantViolationError
from seva.domain.users.entities import Role


@pytest.mark.parametrize(
    ("raw", "role"),
    [("admin", Role.ADMIN), (" Volunteer ", Role.VOLUNTEER), ("user", Role.DONOR), ("", None)],
)
def test_role_parse(raw: str, role: Role | None) -> None:
    assert Role.parse(raw) is role


def test_role_parse_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        Role.parse("superuser")


def test_lockout_remaining() -> None:
    now = datetime(2025, 1, 1, tzinfo=UTC)
    user = make_user(lockout_until=now + timedelta(seconds=90))

    assert user.lockout_remaining(now) == 90
    assert user.lockout_remaining(now + timedelta(seconds=91)) == 0
    assert make_user().lockout_remaining(now) == 0


def test_paise_conversion() -> None:
    assert to_paise(Decimal("1250.5")) == 125050
    assert from_paise(125050) == Decimal("1250.50")
    with pytest.raises(InvariantViolationError):
        to_paise(Decimal("0.001"))


def _intent(**overrides: object) -> DonationIntent:
    fields: dict[str, object] = {
        "id": 7,
        "transaction_id": "TXN_1",
        "receipt_number": "SSF202501010007",
        "donor": DonorDetails(name="Asha Rao", email="asha@example.org"),
        "amount": Decimal("999.99"),
        "cause": "medical",
        "frequency": Frequency.ONE_TIME,
        "status": DonationStatus.PENDING,
        "created_at": datetime(2025, 1, 1, tzinfo=UTC),
    }
    fields.update(overrides)
    return DonationIntent(**fields)  # type: ignore[arg-type]


def test_public_view_hides_anonymous_donor() -> None:
    assert _intent().public_view()["donor_name"] == "Asha Rao"
    view = _intent(anonymous=True).public_view()
    assert view["donor_name"] == "Anonymous"
    assert "donor_email" not in view


def test_terminal_states() -> None:
    assert not _intent().is_terminal
    assert _intent(status=DonationStatus.FAILED).is_terminal


def test_receipt_tax_exemption_rounds_to_paise() -> None:
    completed = datetime(2025, 1, 2, tzinfo=UTC)
    receipt = Receipt.for_donation(_intent(completed_at=completed), tax_exemption_rate=0.5)

    assert receipt.tax_exemption == Decimal("500.00")
    assert receipt.date == completed
