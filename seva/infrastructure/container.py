# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from functools import cached_property

from seva.application.services.checksum import PhonePeChecksum
from seva.application.services.csrf_guard import CsrfGuard
from seva.application.services.password_hashing import WerkzeugPasswordHasher
from seva.application.services.session_manager import SessionManager
from seva.application.use_cases.donations.create_intent import CreateDonationIntentUseCase
from seva.application.use_cases.donations.get_donation_receipt import GetDonationReceiptUseCase
from seva.application.use_cases.donations.get_donation_status import GetDonationStatusUseCase
from seva.application.use_cases.donations.process_callback import (
    ProcessPaymentCallbackUseCase,
)
from seva.application.use_cases.donations.verify_donation import VerifyDonationUseCase
from seva.application.use_cases.users.check_session import CheckSessionUseCase
from seva.application.use_cases.users.get_user_stats import GetUserStatsUseCase
from seva.application.use_cases.users.login_user import LoginUserUseCase
from seva.application.use_cases.users.logout_user import LogoutUserUseCase
from seva.application.use_cases.users.register_user import RegisterUserUseCase
from seva.application.use_cases.users.verify_email import VerifyEmailUseCase
from seva.domain.donations.repositories import PaymentGateway, ReceiptNotifier
from seva.domain.sessions.repositories import SessionStore
from seva.domain.users.repositories import AccountNotifier
from seva.infrastructure.notifications import LogAccountNotifier, LogReceiptNotifier
from seva.infrastructure.payments.phonepe_gateway import PhonePeGateway
from seva.infrastructure.repositories.donations.sqlalchemy_donation_repository import (
    SqlAlchemyDonationRepository,
)
from seva.infrastructure.repositories.users.sqlalchemy_user_repository import (
    SqlAlchemyRememberTokenRepository,
    SqlAlchemyUserRepository,
)
from seva.infrastructure.sessions.memory_session_store import InMemorySessionStore
from seva.infrastructure.sessions.sqlalchemy_session_store import SqlAlchemySessionStore
from seva.interfaces.http.controllers.auth_controller import AuthController
from seva.interfaces.http.controllers.donations_controller import DonationsController
from seva.interfaces.http.controllers.misc_controller import MiscController
from seva.interfaces.http.controllers.payment_callback_controller import (
    PaymentCallbackController,
)
from seva.interfaces.http.cookies import SessionCookies
from seva.shared.config import AppConfig, load_config


class Container:
    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or load_config()

    # Shared services

    @cached_property
    def password_hasher(self) -> WerkzeugPasswordHasher:
        return WerkzeugPasswordHasher()

    @cached_property
    def session_store(self) -> SessionStore:
        if self.config.session_store == "memory":
            return InMemorySessionStore()
        return SqlAlchemySessionStore()

    @cached_property
    def session_manager(self) -> SessionManager:
        return SessionManager(
            store=self.session_store,
            idle_timeout_s=self.config.auth.idle_timeout_s,
            purge_every=self.config.auth.session_purge_every,
        )

    @cached_property
    def csrf_guard(self) -> CsrfGuard:
        return CsrfGuard(sessions=self.session_manager, ttl_s=self.config.auth.csrf_ttl_s)

    @cached_property
    def cookies(self) -> SessionCookies:
        return SessionCookies(policy=self.config.auth, security=self.config.security)

    @cached_property
    def checksum(self) -> PhonePeChecksum:
        return PhonePeChecksum(
            salt_key=self.config.payment.salt_key,
            salt_index=self.config.payment.salt_index,
        )

    @cached_property
    def payment_gateway(self) -> PaymentGateway | None:
        if not self.config.payment.live_requests:
            return None
        return PhonePeGateway(config=self.config.payment, resilience=self.config.resilience)

    # Repositories

    @cached_property
    def user_repository(self) -> SqlAlchemyUserRepository:
        return SqlAlchemyUserRepository()

    @cached_property
    def remember_token_repository(self) -> SqlAlchemyRememberTokenRepository:
        return SqlAlchemyRememberTokenRepository()

    @cached_property
    def donation_repository(self) -> SqlAlchemyDonationRepository:
        return SqlAlchemyDonationRepository()

    # User use cases

    @cached_property
    def login_user_use_case(self) -> LoginUserUseCase:
        return LoginUserUseCase(
            users=self.user_repository,
            remember_tokens=self.remember_token_repository,
            password_hasher=self.password_hasher,
            sessions=self.session_manager,
            csrf_guard=self.csrf_guard,
            policy=self.config.auth,
        )

    @cached_property
    def logout_user_use_case(self) -> LogoutUserUseCase:
        return LogoutUserUseCase(
            sessions=self.session_manager, remember_tokens=self.remember_token_repository
        )

    @cached_property
    def check_session_use_case(self) -> CheckSessionUseCase:
        return CheckSessionUseCase(
            sessions=self.session_manager,
            users=self.user_repository,
            remember_tokens=self.remember_token_repository,
            csrf_guard=self.csrf_guard,
        )

    @cached_property
    def account_notifier(self) -> AccountNotifier:
        return LogAccountNotifier()

    @cached_property
    def register_user_use_case(self) -> RegisterUserUseCase:
        notifier = self.account_notifier
        if self.config.auth.require_email_verification and not getattr(
            notifier, "delivers_tokens", True
        ):
            raise RuntimeError(
                "EMAIL_VERIFICATION_REQUIRED is on but the account notifier cannot "
                "deliver verification links; no account could ever sign in"
            )
        return RegisterUserUseCase(
            users=self.user_repository,
            password_hasher=self.password_hasher,
            notifier=notifier,
            policy=self.config.auth,
        )

    @cached_property
    def verify_email_use_case(self) -> VerifyEmailUseCase:
        return VerifyEmailUseCase(users=self.user_repository)

    @cached_property
    def user_stats_use_case(self) -> GetUserStatsUseCase:
        return GetUserStatsUseCase(users=self.user_repository)

    # Donation use cases

    @cached_property
    def create_intent_use_case(self) -> CreateDonationIntentUseCase:
        return CreateDonationIntentUseCase(
            donations=self.donation_repository,
            checksum=self.checksum,
            config=self.config.payment,
            gateway=self.payment_gateway,
        )

    @cached_property
    def donation_status_use_case(self) -> GetDonationStatusUseCase:
        return GetDonationStatusUseCase(donations=self.donation_repository)

    @cached_property
    def receipt_notifier(self) -> ReceiptNotifier:
        return LogReceiptNotifier()

    @cached_property
    def process_callback_use_case(self) -> ProcessPaymentCallbackUseCase:
        return ProcessPaymentCallbackUseCase(
            donations=self.donation_repository,
            checksum=self.checksum,
            notifier=self.receipt_notifier,
            tax_exemption_rate=self.config.payment.tax_exemption_rate,
        )

    @cached_property
    def verify_donation_use_case(self) -> VerifyDonationUseCase:
        return VerifyDonationUseCase(
            donations=self.donation_repository,
            gateway=self.payment_gateway,
            checksum=self.checksum,
            config=self.config.payment,
            notifier=self.receipt_notifier,
        )

    @cached_property
    def donation_receipt_use_case(self) -> GetDonationReceiptUseCase:
        return GetDonationReceiptUseCase(
            donations=self.donation_repository,
            tax_exemption_rate=self.config.payment.tax_exemption_rate,
        )

    # Controllers

    @cached_property
    def auth_controller(self) -> AuthController:
        return AuthController(
            sessions=self.session_manager,
            csrf_guard=self.csrf_guard,
            cookies=self.cookies,
            login_use_case=self.login_user_use_case,
            logout_use_case=self.logout_user_use_case,
            check_session_use_case=self.check_session_use_case,
            register_use_case=self.register_user_use_case,
            verify_email_use_case=self.verify_email_use_case,
            user_stats_use_case=self.user_stats_use_case,
        )

    @cached_property
    def donations_controller(self) -> DonationsController:
        return DonationsController(
            sessions=self.session_manager,
            csrf_guard=self.csrf_guard,
            cookies=self.cookies,
            create_intent_use_case=self.create_intent_use_case,
            status_use_case=self.donation_status_use_case,
            verify_use_case=self.verify_donation_use_case,
            receipt_use_case=self.donation_receipt_use_case,
        )

    @cached_property
    def payment_callback_controller(self) -> PaymentCallbackController:
        return PaymentCallbackController(
            process_callback_use_case=self.process_callback_use_case
        )

    @cached_property
    def misc_controller(self) -> MiscController:
        return MiscController()


container = Container()
