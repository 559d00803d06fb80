# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from seva.domain.donations.entities import (
    DonationIntent,
    DonationStatus,
    DonorDetails,
    Frequency,
    from_paise,
)
from seva.domain.donations.exceptions import DuplicateTransactionIdError
from seva.domain.donations.repositories import DonationRepository
from seva.infrastructure.db.models import Donation
from seva.infrastructure.db.session import session_scope
from seva.infrastructure.repositories.users.sqlalchemy_user_repository import as_utc


def _to_domain(row: Donation) -> DonationIntent:
    return DonationIntent(
        id=row.id,
        transaction_id=row.transaction_id,
        receipt_number=row.receipt_number,
        donor=DonorDetails(
            name=row.donor_name,
            email=row.donor_email,
            phone=row.donor_phone,
            pan=row.donor_pan,
            address=row.donor_address,
        ),
        amount=from_paise(row.amount_paise),
        cause=row.cause,
        frequency=Frequency(row.frequency),
        status=DonationStatus(row.status),
        created_at=as_utc(row.created_at) or datetime.now(UTC),
        anonymous=row.anonymous,
        updates_consent=row.updates_consent,
        processor_reference=row.processor_reference,
        failure_reason=row.failure_reason,
        completed_at=as_utc(row.completed_at),
        callback_processed_at=as_utc(row.callback_processed_at),
    )


class SqlAlchemyDonationRepository(DonationRepository):
    def insert_pending(self, intent: DonationIntent) -> DonationIntent:
        try:
            with session_scope() as session:
                row = Donation(
                    transaction_id=intent.transaction_id,
                    receipt_number=intent.receipt_number,
                    donor_name=intent.donor.name,
                    donor_email=intent.donor.email,
                    donor_phone=intent.donor.phone,
                    donor_pan=intent.donor.pan,
                    donor_address=intent.donor.address,
                    amount_paise=intent.amount_paise,
                    cause=intent.cause,
                    frequency=intent.frequency.value,
                    anonymous=intent.anonymous,
                    updates_consent=intent.updates_consent,
                    status=DonationStatus.PENDING.value,
                    created_at=intent.created_at,
                )
                session.add(row)
                session.flush()
                session.refresh(row)
                return _to_domain(row)
        except IntegrityError as exc:
            raise DuplicateTransactionIdError(
                context={"transaction_id": intent.transaction_id}
            ) from exc

    def find_by_transaction_id(self, transaction_id: str) -> DonationIntent | None:
        with session_scope() as session:
            row = session.scalars(
                select(Donation).where(Donation.transaction_id == transaction_id)
            ).first()
            return _to_domain(row) if row else None

    def transition_status(
        self,
        transaction_id: str,
        status: DonationStatus,
        *,
        at: datetime,
        processor_reference: str | None = None,
        failure_reason: str | None = None,
    ) -> bool:
        values: dict[str, object] = {
            "status": status.value,
            "callback_processed_at": at,
            "processor_reference": processor_reference,
            "failure_reason": failure_reason,
        }
        if status is DonationStatus.COMPLETED:
            values["completed_at"] = at
        with session_scope() as session:
            result = session.execute(
                update(Donation)
                .where(
                    Donation.transaction_id == transaction_id,
                    Donation.status == DonationStatus.PENDING.value,
                )
                .values(**values)
            )
            return result.rowcount == 1
