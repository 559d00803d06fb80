# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, Response, jsonify, request

from seva.application.use_cases.donations.process_callback import (
    ProcessPaymentCallbackUseCase,
)
from seva.domain.donations.entities import DonationStatus
from seva.infrastructure.audit import AuditAction, audit_log
from seva.infrastructure.observability import record_callback
from seva.interfaces.http.cookies import client_ip, request_payload
from seva.shared.errors.base import AppError


class PaymentCallbackController:
    """Processor-facing endpoint; it carries no session and no CSRF token."""

    def __init__(self, *, process_callback_use_case: ProcessPaymentCallbackUseCase) -> None:
        self._process_callback_use_case = process_callback_use_case

    def callback(self) -> tuple[Response, int]:
        body = request_payload()
        encoded = body.get("response")
        presented = request.headers.get("X-VERIFY")

        try:
            outcome = self._process_callback_use_case.execute(
                encoded if isinstance(encoded, str) else None, presented
            )
        except AppError as exc:
            record_callback(exc.code)
            audit_log(
                AuditAction.CALLBACK_REJECTED,
                ip_address=client_ip(),
                details={"error": exc.code},
                success=False,
            )
            raise

        if not outcome.applied:
            record_callback("noop")
            if outcome.status is not DonationStatus.PENDING:
                audit_log(
                    AuditAction.CALLBACK_DUPLICATE,
                    ip_address=client_ip(),
                    details={"transaction_id": outcome.transaction_id},
                    success=True,
                )
        else:
            record_callback(outcome.status.value)
            audit_log(
                AuditAction.DONATION_COMPLETED
                if outcome.status is DonationStatus.COMPLETED
                else AuditAction.DONATION_FAILED,
                ip_address=client_ip(),
                details={
                    "transaction_id": outcome.transaction_id,
                    "code": outcome.processor_status,
                },
                success=outcome.status is DonationStatus.COMPLETED,
            )

        return (
            jsonify(
                {
                    "success": True,
                    "transaction_id": outcome.transaction_id,
                    "status": outcome.status.value,
                    "applied": outcome.applied,
                }
            ),
            HTTPStatus.OK,
        )

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("payment_callback", __name__)
        bp.add_url_rule("/payment-callback", view_func=self.callback, methods=["POST"])
        return bp
