from __future__ import annotations

import threading
from decimal import Decimal

import pytest

from conftest import FakeClock, InMemoryDonationRepository, RecordingReceiptNotifier
from seva.application.services.checksum import PhonePeChecksum
from seva.application.use_cases.donations.create_intent import (
    MAX_TRANSACTION_ID_ATTEMPTS,
    CreateDonationIntentUseCase,
)
from seva.application.use_cases.donations.get_donation_receipt import GetDonationReceiptUseCase
from seva.application.use_cases.donations.get_donation_status import GetDonationStatusUseCase
from seva.application.use_cases.donations.process_callback import (
    ProcessPaymentCallbackUseCase,
    map_processor_status,
)
from seva.application.use_cases.donations.verify_donation import VerifyDonationUseCase
from seva.domain.donations.entities import DonationRequest, DonationStatus, DonorDetails
from seva.domain.donations.exceptions import (
    CallbackVerificationError,
    DonationNotFoundError,
    DuplicateTransactionIdError,
    ReceiptUnavailableError,
)
from seva.shared.config.settings import PaymentConfig
from seva.shared.errors import DependencyError, ValidationError


@pytest.fixture()
def payment_config() -> PaymentConfig:
    return PaymentConfig.model_validate(
        {"PHONEPE_MERCHANT_ID": "MERCHANTUAT", "PHONEPE_SALT_KEY": "salt-key"}
    )


@pytest.fixture()
def checksum() -> PhonePeChecksum:
    return PhonePeChecksum(salt_key="salt-key", salt_index=1)


@pytest.fixture()
def donations() -> InMemoryDonationRepository:
    return InMemoryDonationRepository()


@pytest.fixture()
def notifier() -> RecordingReceiptNotifier:
    return RecordingReceiptNotifier()


@pytest.fixture()
def create_intent(
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
    payment_config: PaymentConfig,
    clock: FakeClock,
) -> CreateDonationIntentUseCase:
    return CreateDonationIntentUseCase(
        donations=donations, checksum=checksum, config=payment_config, clock=clock
    )


@pytest.fixture()
def process_callback(
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
    notifier: RecordingReceiptNotifier,
    clock: FakeClock,
) -> ProcessPaymentCallbackUseCase:
    return ProcessPaymentCallbackUseCase(
        donations=donations,
        checksum=checksum,
        notifier=notifier,
        tax_exemption_rate=0.5,
        clock=clock,
    )


def _request(**overrides: object) -> DonationRequest:
    donor = DonorDetails(
        name="Asha Rao",
        email="Asha@Example.org",
        phone=overrides.pop("phone", "98765 43210"),  # type: ignore[arg-type]
        pan=overrides.pop("pan", "abcde1234f"),  # type: ignore[arg-type]
    )
    fields: dict[str, object] = {"donor": donor, "amount": Decimal("500"), "cause": "education"}
    fields.update(overrides)
    return DonationRequest(**fields)  # type: ignore[arg-type]


def _signed_callback(checksum: PhonePeChecksum, txn: str, code: str, amount: int = 50000):
    encoded = checksum.encode_payload(
        {
            "success": code == "PAYMENT_SUCCESS",
            "code": code,
            "data": {
                "merchantTransactionId": txn,
                "transactionId": "T2501011200",
                "amount": amount,
            },
        }
    )
    return encoded, checksum.sign_response(encoded)


def test_create_intent_persists_pending_and_signs_payload(
    create_intent: CreateDonationIntentUseCase,
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
) -> None:
    result = create_intent.execute(_request())

    intent = result.intent
    assert intent.status is DonationStatus.PENDING
    assert intent.transaction_id.startswith("TXN_20250101120000_")
    assert intent.receipt_number.startswith("SSF20250101")
    assert intent.donor.phone == "9876543210"
    assert intent.donor.pan == "ABCDE1234F"
    assert intent.donor.email == "asha@example.org"
    assert donations.find_by_transaction_id(intent.transaction_id) is not None

    payment = result.payment
    assert payment.url == "https://api-preprod.phonepe.com/apis/hermes/pg/v1/pay"
    assert payment.checksum == checksum.sign_request(payment.payload, "/pg/v1/pay")
    payload = checksum.decode_payload(payment.payload)
    assert payload["amount"] == 50000
    assert payload["merchantId"] == "MERCHANTUAT"
    assert payload["merchantTransactionId"] == intent.transaction_id
    assert payload["merchantUserId"].startswith("USER_")


@pytest.mark.parametrize(
    ("overrides", "field", "error_type"),
    [
        ({"amount": Decimal("0.50")}, "amount", "amount_out_of_range"),
        ({"amount": Decimal("1000000.01")}, "amount", "amount_out_of_range"),
        ({"amount": Decimal("10.005")}, "amount", "amount_precision"),
        ({"cause": "weapons"}, "cause", "cause_invalid"),
        ({"phone": "12345"}, "phone", "phone_invalid"),
        ({"pan": "1234"}, "pan", "pan_invalid"),
    ],
)
def test_create_intent_rejects_invalid_input(
    create_intent: CreateDonationIntentUseCase,
    donations: InMemoryDonationRepository,
    overrides: dict[str, object],
    field: str,
    error_type: str,
) -> None:
    with pytest.raises(ValidationError) as exc_info:
        create_intent.execute(_request(**overrides))

    context = exc_info.value.context or {}
    assert context["fields"] == [field]
    assert context["errors"][0]["type"] == error_type
    assert donations.rows == {}


def test_create_intent_retries_on_transaction_id_collision(
    create_intent: CreateDonationIntentUseCase, donations: InMemoryDonationRepository
) -> None:
    original = donations.insert_pending
    calls = {"n": 0}

    def flaky(intent):
        calls["n"] += 1
        if calls["n"] == 1:
            raise DuplicateTransactionIdError()
        return original(intent)

    donations.insert_pending = flaky  # type: ignore[method-assign]

    result = create_intent.execute(_request())

    assert calls["n"] == 2
    assert result.intent.id == 1


def test_create_intent_gives_up_after_repeated_collisions(
    create_intent: CreateDonationIntentUseCase, donations: InMemoryDonationRepository
) -> None:
    def always_collides(intent):
        raise DuplicateTransactionIdError()

    donations.insert_pending = always_collides  # type: ignore[method-assign]

    with pytest.raises(DependencyError) as exc_info:
        create_intent.execute(_request())
    assert exc_info.value.code == "transaction_id_unavailable"
    assert MAX_TRANSACTION_ID_ATTEMPTS == 5


def test_gateway_failure_marks_intent_failed(
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
    payment_config: PaymentConfig,
    clock: FakeClock,
) -> None:
    class DownGateway:
        def initiate(self, payload: str, checksum: str) -> str:
            raise DependencyError("payment_processor_unavailable")

    use_case = CreateDonationIntentUseCase(
        donations=donations,
        checksum=checksum,
        config=payment_config,
        gateway=DownGateway(),
        clock=clock,
    )

    with pytest.raises(DependencyError):
        use_case.execute(_request())

    (intent,) = donations.rows.values()
    assert intent.status is DonationStatus.FAILED
    assert intent.failure_reason == "initiation_failed:payment_processor_unavailable"


def test_gateway_url_replaces_default_redirect(
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
    payment_config: PaymentConfig,
) -> None:
    class Gateway:
        def initiate(self, payload: str, checksum: str) -> str:
            return "https://mercury.example/pay/abc"

    use_case = CreateDonationIntentUseCase(
        donations=donations, checksum=checksum, config=payment_config, gateway=Gateway()
    )

    assert use_case.execute(_request()).payment.url == "https://mercury.example/pay/abc"


def test_success_callback_completes_donation_and_sends_one_receipt(
    create_intent: CreateDonationIntentUseCase,
    process_callback: ProcessPaymentCallbackUseCase,
    donations: InMemoryDonationRepository,
    notifier: RecordingReceiptNotifier,
    checksum: PhonePeChecksum,
) -> None:
    txn = create_intent.execute(_request()).intent.transaction_id
    encoded, signature = _signed_callback(checksum, txn, "PAYMENT_SUCCESS")

    first = process_callback.execute(encoded, signature)
    replay = process_callback.execute(encoded, signature)

    assert first.applied and first.status is DonationStatus.COMPLETED
    assert not replay.applied and replay.status is DonationStatus.COMPLETED
    stored = donations.find_by_transaction_id(txn)
    assert stored is not None
    assert stored.processor_reference == "T2501011200"
    (receipt,) = notifier.receipts
    assert receipt.tax_exemption == Decimal("250.00")


def test_terminal_state_is_never_overwritten(
    create_intent: CreateDonationIntentUseCase,
    process_callback: ProcessPaymentCallbackUseCase,
    donations: InMemoryDonationRepository,
    notifier: RecordingReceiptNotifier,
    checksum: PhonePeChecksum,
) -> None:
    txn = create_intent.execute(_request()).intent.transaction_id
    process_callback.execute(*_signed_callback(checksum, txn, "PAYMENT_ERROR"))

    outcome = process_callback.execute(*_signed_callback(checksum, txn, "PAYMENT_SUCCESS"))

    assert not outcome.applied
    assert outcome.status is DonationStatus.FAILED
    assert notifier.receipts == []
    assert len(notifier.failures) == 1


def test_pending_callback_is_acknowledged_without_transition(
    create_intent: CreateDonationIntentUseCase,
    process_callback: ProcessPaymentCallbackUseCase,
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
) -> None:
    txn = create_intent.execute(_request()).intent.transaction_id

    outcome = process_callback.execute(*_signed_callback(checksum, txn, "PAYMENT_PENDING"))

    assert not outcome.applied
    assert outcome.status is DonationStatus.PENDING
    stored = donations.find_by_transaction_id(txn)
    assert stored is not None and stored.status is DonationStatus.PENDING


def test_tampered_callback_is_rejected_without_state_change(
    create_intent: CreateDonationIntentUseCase,
    process_callback: ProcessPaymentCallbackUseCase,
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
) -> None:
    txn = create_intent.execute(_request()).intent.transaction_id
    _, signature = _signed_callback(checksum, txn, "PAYMENT_ERROR")
    forged, _ = _signed_callback(checksum, txn, "PAYMENT_SUCCESS")

    with pytest.raises(CallbackVerificationError):
        process_callback.execute(forged, signature)

    stored = donations.find_by_transaction_id(txn)
    assert stored is not None and stored.status is DonationStatus.PENDING


def test_unknown_transaction_is_not_found(
    process_callback: ProcessPaymentCallbackUseCase, checksum: PhonePeChecksum
) -> None:
    with pytest.raises(DonationNotFoundError):
        process_callback.execute(*_signed_callback(checksum, "TXN_UNKNOWN", "PAYMENT_SUCCESS"))


def test_signed_body_without_transaction_id_is_rejected(
    process_callback: ProcessPaymentCallbackUseCase, checksum: PhonePeChecksum
) -> None:
    encoded = checksum.encode_payload({"code": "PAYMENT_SUCCESS", "data": {}})

    with pytest.raises(CallbackVerificationError):
        process_callback.execute(encoded, checksum.sign_response(encoded))


def test_concurrent_duplicate_callbacks_have_single_winner(
    create_intent: CreateDonationIntentUseCase,
    process_callback: ProcessPaymentCallbackUseCase,
    notifier: RecordingReceiptNotifier,
    checksum: PhonePeChecksum,
) -> None:
    txn = create_intent.execute(_request()).intent.transaction_id
    encoded, signature = _signed_callback(checksum, txn, "PAYMENT_SUCCESS")
    barrier = threading.Barrier(8)
    outcomes = []

    def deliver() -> None:
        barrier.wait()
        outcomes.append(process_callback.execute(encoded, signature))

    threads = [threading.Thread(target=deliver) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(1 for outcome in outcomes if outcome.applied) == 1
    assert len(notifier.receipts) == 1


@pytest.mark.parametrize(
    ("code", "status"),
    [
        ("PAYMENT_SUCCESS", DonationStatus.COMPLETED),
        ("payment_success", DonationStatus.COMPLETED),
        ("PAYMENT_ERROR", DonationStatus.FAILED),
        ("PAYMENT_DECLINED", DonationStatus.FAILED),
        ("PAYMENT_PENDING", DonationStatus.PENDING),
        ("INTERNAL_SERVER_ERROR", DonationStatus.PENDING),
        ("SOMETHING_NEW", DonationStatus.FAILED),
        (None, DonationStatus.FAILED),
    ],
)
def test_map_processor_status(code: str | None, status: DonationStatus) -> None:
    assert map_processor_status(code) is status


def test_status_lookup(
    create_intent: CreateDonationIntentUseCase, donations: InMemoryDonationRepository
) -> None:
    txn = create_intent.execute(_request(anonymous=True)).intent.transaction_id
    lookup = GetDonationStatusUseCase(donations=donations)

    intent = lookup.execute(txn)

    assert intent.public_view()["donor_name"] == "Anonymous"
    with pytest.raises(DonationNotFoundError):
        lookup.execute("TXN_MISSING")


class StatusGateway:
    def __init__(self, code: str, amount: int = 50000) -> None:
        self.code = code
        self.amount = amount
        self.checked: list[tuple[str, str]] = []

    def initiate(self, payload: str, checksum: str) -> str:
        raise AssertionError("not used")

    def check_status(self, transaction_id: str, checksum: str) -> dict[str, object]:
        self.checked.append((transaction_id, checksum))
        return {
            "success": self.code == "PAYMENT_SUCCESS",
            "code": self.code,
            "data": {
                "merchantTransactionId": transaction_id,
                "transactionId": "T2501011300",
                "amount": self.amount,
            },
        }


def _verify_use_case(
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
    payment_config: PaymentConfig,
    notifier: RecordingReceiptNotifier,
    gateway: StatusGateway | None,
) -> VerifyDonationUseCase:
    return VerifyDonationUseCase(
        donations=donations,
        gateway=gateway,
        checksum=checksum,
        config=payment_config,
        notifier=notifier,
    )


def test_verify_settles_pending_donation_from_processor_status(
    create_intent: CreateDonationIntentUseCase,
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
    payment_config: PaymentConfig,
    notifier: RecordingReceiptNotifier,
) -> None:
    txn = create_intent.execute(_request()).intent.transaction_id
    gateway = StatusGateway("PAYMENT_SUCCESS")
    verify = _verify_use_case(donations, checksum, payment_config, notifier, gateway)

    result = verify.execute(txn)

    assert result.outcome.applied
    assert result.donation.status is DonationStatus.COMPLETED
    assert result.donation.processor_reference == "T2501011300"
    assert gateway.checked == [(txn, checksum.sign_status_check("MERCHANTUAT", txn))]
    assert len(notifier.receipts) == 1


def test_verify_after_callback_does_not_notify_twice(
    create_intent: CreateDonationIntentUseCase,
    process_callback: ProcessPaymentCallbackUseCase,
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
    payment_config: PaymentConfig,
    notifier: RecordingReceiptNotifier,
) -> None:
    txn = create_intent.execute(_request()).intent.transaction_id
    process_callback.execute(*_signed_callback(checksum, txn, "PAYMENT_SUCCESS"))
    gateway = StatusGateway("PAYMENT_ERROR")
    verify = _verify_use_case(donations, checksum, payment_config, notifier, gateway)

    result = verify.execute(txn)

    assert not result.outcome.applied
    assert result.outcome.status is DonationStatus.COMPLETED
    assert gateway.checked == []
    assert len(notifier.receipts) == 1
    assert notifier.failures == []


def test_verify_leaves_pending_donation_untouched_while_processor_pending(
    create_intent: CreateDonationIntentUseCase,
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
    payment_config: PaymentConfig,
    notifier: RecordingReceiptNotifier,
) -> None:
    txn = create_intent.execute(_request()).intent.transaction_id
    verify = _verify_use_case(
        donations, checksum, payment_config, notifier, StatusGateway("PAYMENT_PENDING")
    )

    result = verify.execute(txn)

    assert not result.outcome.applied
    assert result.donation.status is DonationStatus.PENDING
    assert notifier.receipts == [] and notifier.failures == []


def test_verify_requires_a_gateway_and_a_known_donation(
    create_intent: CreateDonationIntentUseCase,
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
    payment_config: PaymentConfig,
    notifier: RecordingReceiptNotifier,
) -> None:
    txn = create_intent.execute(_request()).intent.transaction_id
    verify = _verify_use_case(donations, checksum, payment_config, notifier, None)

    with pytest.raises(DependencyError) as excinfo:
        verify.execute(txn)
    assert excinfo.value.code == "payment_processor_disabled"
    with pytest.raises(DonationNotFoundError):
        verify.execute("TXN_MISSING")


def test_receipt_only_for_completed_donations(
    create_intent: CreateDonationIntentUseCase,
    process_callback: ProcessPaymentCallbackUseCase,
    donations: InMemoryDonationRepository,
    checksum: PhonePeChecksum,
) -> None:
    txn = create_intent.execute(_request(anonymous=True)).intent.transaction_id
    receipts = GetDonationReceiptUseCase(donations=donations, tax_exemption_rate=0.5)

    with pytest.raises(ReceiptUnavailableError):
        receipts.execute(txn)

    process_callback.execute(*_signed_callback(checksum, txn, "PAYMENT_SUCCESS"))
    receipt = receipts.execute(txn).as_dict()

    assert receipt["transaction_id"] == txn
    assert receipt["amount"] == "500"
    assert receipt["tax_exemption"] == "250.00"
    assert receipt["donor_name"] == "Anonymous"
