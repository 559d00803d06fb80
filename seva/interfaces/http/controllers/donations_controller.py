# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from flask import Blueprint, Response, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import MethodNotAllowed

from seva.application.services.csrf_guard import CsrfGuard
from seva.application.services.session_manager import SessionManager
from seva.application.use_cases.donations.create_intent import CreateDonationIntentUseCase
from seva.application.use_cases.donations.get_donation_receipt import GetDonationReceiptUseCase
from seva.application.use_cases.donations.get_donation_status import GetDonationStatusUseCase
from seva.application.use_cases.donations.verify_donation import VerifyDonationUseCase
from seva.domain.donations.entities import DonationStatus
from seva.infrastructure.audit import AuditAction, audit_log
from seva.infrastructure.observability import record_callback, record_intent
from seva.interfaces.http.controllers.base import SessionBoundController
from seva.interfaces.http.cookies import SessionCookies, client_ip, request_payload
from seva.interfaces.http.dto.donations import DonationRequestDTO, DonationStatusQueryDTO
from seva.shared.errors.base import ValidationError as InputValidationError
from seva.shared.errors.validation import raise_validation_error
from seva.shared.middleware.csrf import csrf_protect
from seva.shared.middleware.rate_limit import rate_limit


class DonationsController(SessionBoundController):
    def __init__(
        self,
        *,
        sessions: SessionManager,
        csrf_guard: CsrfGuard,
        cookies: SessionCookies,
        create_intent_use_case: CreateDonationIntentUseCase,
        status_use_case: GetDonationStatusUseCase,
        verify_use_case: VerifyDonationUseCase,
        receipt_use_case: GetDonationReceiptUseCase,
    ) -> None:
        super().__init__(sessions=sessions, csrf_guard=csrf_guard, cookies=cookies)
        self._create_intent_use_case = create_intent_use_case
        self._status_use_case = status_use_case
        self._verify_use_case = verify_use_case
        self._receipt_use_case = receipt_use_case

    def dispatch(self) -> tuple[Response, int]:
        action = request.args.get("action", "")
        if action == "create":
            if request.method != "POST":
                raise MethodNotAllowed(valid_methods=["POST"])
            return self.create()
        if action == "status":
            if request.method != "GET":
                raise MethodNotAllowed(valid_methods=["GET"])
            return self.status()
        if action == "verify":
            if request.method != "POST":
                raise MethodNotAllowed(valid_methods=["POST"])
            return self.verify()
        if action == "receipt":
            if request.method != "GET":
                raise MethodNotAllowed(valid_methods=["GET"])
            return self.receipt()
        raise InputValidationError("invalid_action", context={"action": action[:32]})

    @rate_limit(limit=10, window_seconds=60.0)
    @csrf_protect
    def create(self) -> tuple[Response, int]:
        try:
            dto = DonationRequestDTO.model_validate(request_payload())
        except ValidationError as exc:
            raise_validation_error(exc)

        result = self._create_intent_use_case.execute(dto.to_domain())
        intent = result.intent
        session = self._current_session()

        record_intent(intent.cause)
        audit_log(
            AuditAction.DONATION_INTENT_CREATED,
            user_id=session.user_id,
            ip_address=client_ip(),
            details={
                "transaction_id": intent.transaction_id,
                "amount": str(intent.amount),
                "cause": intent.cause,
            },
            success=True,
        )

        return (
            jsonify(
                {
                    "success": True,
                    "donation_id": intent.id,
                    "transaction_id": intent.transaction_id,
                    "payment_url": result.payment.url,
                    "donation": intent.public_view(),
                    "payment": {
                        "url": result.payment.url,
                        "request": result.payment.payload,
                        "checksum": result.payment.checksum,
                    },
                }
            ),
            HTTPStatus.CREATED,
        )

    def _transaction_id(self, source: Mapping[str, Any]) -> str:
        try:
            query = DonationStatusQueryDTO.model_validate(
                {"transaction_id": source.get("transaction_id", "")}
            )
        except ValidationError as exc:
            raise_validation_error(exc)
        return query.transaction_id

    def status(self) -> tuple[Response, int]:
        intent = self._status_use_case.execute(self._transaction_id(request.args))
        return jsonify({"success": True, "donation": intent.public_view()}), HTTPStatus.OK

    @rate_limit(limit=10, window_seconds=60.0)
    def verify(self) -> tuple[Response, int]:
        result = self._verify_use_case.execute(self._transaction_id(request_payload()))
        outcome = result.outcome

        if outcome.applied:
            record_callback(outcome.status.value)
            audit_log(
                AuditAction.DONATION_VERIFIED,
                user_id=self._current_session().user_id,
                ip_address=client_ip(),
                details={
                    "transaction_id": outcome.transaction_id,
                    "code": outcome.processor_status,
                    "status": outcome.status.value,
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
                    "donation": result.donation.public_view(),
                }
            ),
            HTTPStatus.OK,
        )

    def receipt(self) -> tuple[Response, int]:
        receipt = self._receipt_use_case.execute(self._transaction_id(request.args))
        return jsonify({"success": True, "receipt": receipt.as_dict()}), HTTPStatus.OK

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("donations", __name__)
        bp.add_url_rule("/donations", view_func=self.dispatch, methods=["GET", "POST"])
        return bp
