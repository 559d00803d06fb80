# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import os
import sys
from functools import lru_cache
from typing import Annotated, Any, Literal, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _parse_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


Flag = Annotated[bool, BeforeValidator(_parse_flag)]
CsvList = Annotated[list[str], BeforeValidator(_parse_csv)]

_INSECURE_SECRETS = ("", "dev", "development", "test", "changeme")


class _EnvSection(BaseModel):
    """Nested section populated from the same flat environment as AppConfig."""

    model_config = ConfigDict(validate_by_name=True)


class DatabaseConfig(_EnvSection):
    url: str = Field("sqlite:///seva.db", alias="DATABASE_URL")
    pool_size: int = Field(10, ge=1, alias="DATABASE_POOL_SIZE")
    max_overflow: int = Field(5, ge=0, alias="DATABASE_MAX_OVERFLOW")
    pool_timeout: float = Field(30.0, ge=0.1, alias="DATABASE_POOL_TIMEOUT")


class ResilienceConfig(_EnvSection):
    default_timeout: float = Field(15.0, ge=0.1, alias="RESILIENCE_TIMEOUT")
    max_retries: int = Field(2, ge=0, alias="RESILIENCE_RETRIES")
    backoff_base: float = Field(0.5, ge=0.1, alias="RESILIENCE_BACKOFF_BASE")
    backoff_cap: float = Field(8.0, ge=0.1, alias="RESILIENCE_BACKOFF_CAP")
    circuit_fail_threshold: int = Field(5, ge=1, alias="RESILIENCE_CIRCUIT_THRESHOLD")
    circuit_reset_timeout: float = Field(60.0, ge=1.0, alias="RESILIENCE_CIRCUIT_RESET")


class ObservabilityConfig(_EnvSection):
    metrics_enabled: Flag = Field(True, alias="METRICS_ENABLED")
    service_name: str = Field("seva-portal", alias="SERVICE_NAME")


class SecurityConfig(_EnvSection):
    cookie_secure: Flag = Field(False, alias="COOKIE_SECURE")
    cookie_samesite: Literal["Strict", "Lax", "None"] = Field("Strict", alias="COOKIE_SAMESITE")
    allowed_origins: CsvList = Field(["*"], alias="ALLOWED_ORIGINS")
    enable_rate_limit: Flag = Field(True, alias="ENABLE_RATE_LIMIT")
    rate_limit_requests: int = Field(10, ge=1, alias="RL_LIMIT")
    rate_limit_window: float = Field(60.0, gt=0, alias="RL_WINDOW")
    enable_hsts: Flag = Field(False, alias="ENABLE_HSTS")


class AuthPolicyConfig(_EnvSection):
    """Knobs of the login/session state machine.

    ``LOGIN_RATE_LIMIT`` is the failed-attempt count that arms the lockout.
    """

    lockout_threshold: int = Field(5, ge=1, alias="LOGIN_RATE_LIMIT")
    lockout_duration_s: int = Field(30 * 60, ge=1, alias="LOGIN_LOCKOUT_SECONDS")
    idle_timeout_s: int = Field(2 * 60 * 60, ge=60, alias="SESSION_LIFETIME")
    require_email_verification: Flag = Field(False, alias="EMAIL_VERIFICATION_REQUIRED")
    csrf_ttl_s: int = Field(3600, ge=60, alias="CSRF_TOKEN_LIFETIME")
    session_purge_every: int = Field(100, ge=1, alias="SESSION_PURGE_EVERY")

    remember_me_days: int = Field(30, ge=1, alias="REMEMBER_ME_DAYS")
    session_cookie_name: str = Field("SSFSESSID", alias="SESSION_COOKIE_NAME")
    password_min_length: int = Field(8, ge=6, alias="PASSWORD_MIN_LENGTH")
    registration_enabled: Flag = Field(True, alias="REGISTRATION_ENABLED")

    admin_redirect_url: str = Field("./admin-dashboard.html", alias="ADMIN_URL")
    volunteer_redirect_url: str = Field(
        "./volunteer-dashboard.html", alias="VOLUNTEER_DASHBOARD_URL"
    )
    donor_redirect_url: str = Field("./dashboard.html", alias="USER_DASHBOARD_URL")
    logout_redirect_url: str = Field("./login.html", alias="FRONTEND_URL")

    def redirect_for(self, role: str) -> str:
        if role == "admin":
            return self.admin_redirect_url
        if role == "volunteer":
            return self.volunteer_redirect_url
        return self.donor_redirect_url


class PaymentConfig(_EnvSection):
    merchant_id: str = Field("", alias="PHONEPE_MERCHANT_ID")
    salt_key: str = Field("", alias="PHONEPE_SALT_KEY")
    salt_index: int = Field(1, ge=1, alias="PHONEPE_SALT_INDEX")
    environment: str = Field("UAT", alias="PHONEPE_ENV")
    base_url: str = Field("", alias="PHONEPE_BASE_URL")
    pay_path: str = Field("/pg/v1/pay", alias="PHONEPE_PAY_PATH")
    callback_url: str = Field("http://localhost:5000/payment-callback", alias="CALLBACK_URL")
    redirect_url: str = Field(
        "http://localhost:5000/payment-callback", alias="PAYMENT_REDIRECT_URL"
    )
    live_requests: Flag = Field(False, alias="PHONEPE_LIVE_REQUESTS")

    transaction_prefix: str = Field("TXN", alias="TRANSACTION_PREFIX")
    receipt_prefix: str = Field("SSF", alias="RECEIPT_PREFIX")
    phone_pattern: str = Field(r"^[6-9]\d{9}$", alias="DONOR_PHONE_PATTERN")
    causes: CsvList = Field(
        ["general", "poor-feeding", "education", "medical", "disaster"],
        alias="DONATION_CAUSES",
    )
    min_amount: float = Field(1.0, gt=0, alias="DONATION_MIN_AMOUNT")
    max_amount: float = Field(1_000_000.0, gt=0, alias="DONATION_MAX_AMOUNT")
    tax_exemption_rate: float = Field(0.5, ge=0, le=1, alias="TAX_EXEMPTION_RATE")

    def processor_base_url(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        if self.environment.upper() == "PROD":
            return "https://api.phonepe.com/apis/hermes"
        return "https://api-preprod.phonepe.com/apis/hermes"


_Section = TypeVar("_Section", bound=_EnvSection)


def _from_env(section: type[_Section]):
    def factory() -> _Section:
        return section.model_validate(dict(os.environ))

    return factory


class AppConfig(BaseSettings):
    app_env: str = Field("development", alias="APP_ENV")
    secret_key: str = Field("dev", alias="SECRET_KEY")
    admin_email: str | None = Field(None, alias="ADMIN_EMAIL")
    debug_logging: Flag = Field(False, alias="DEBUG_LOGGING")
    expose_error_details: Flag = Field(False, alias="EXPOSE_ERROR_DETAILS")
    session_store: Literal["database", "memory"] = Field("database", alias="SESSION_STORE")

    database: DatabaseConfig = Field(default_factory=_from_env(DatabaseConfig))
    resilience: ResilienceConfig = Field(default_factory=_from_env(ResilienceConfig))
    observability: ObservabilityConfig = Field(default_factory=_from_env(ObservabilityConfig))
    security: SecurityConfig = Field(default_factory=_from_env(SecurityConfig))
    auth: AuthPolicyConfig = Field(default_factory=_from_env(AuthPolicyConfig))
    payment: PaymentConfig = Field(default_factory=_from_env(PaymentConfig))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_production(self) -> "AppConfig":
        if not self.is_production():
            return self

        # logging is not configured yet, so problems go straight to stderr
        fatal = []
        if self.secret_key in _INSECURE_SECRETS:
            fatal.append(
                "SECRET_KEY is a development default; generate one with "
                "`python -c \"import secrets; print(secrets.token_urlsafe(32))\"`"
            )
        if not self.payment.salt_key:
            fatal.append("PHONEPE_SALT_KEY is empty; payment callbacks cannot be verified")
        if fatal:
            for problem in fatal:
                print(f"❌ CRITICAL: {problem}", file=sys.stderr)
            sys.exit(1)

        warnings = [
            message
            for enabled, message in (
                (self.expose_error_details, "EXPOSE_ERROR_DETAILS leaks internal errors to clients"),
                (not self.security.cookie_secure, "COOKIE_SECURE is off; cookies travel over plain HTTP"),
                ("*" in self.security.allowed_origins, "ALLOWED_ORIGINS contains the * wildcard"),
                (not self.security.enable_hsts, "ENABLE_HSTS is off"),
            )
            if enabled
        ]
        for message in warnings:
            print(f"⚠️  PRODUCTION WARNING: {message}", file=sys.stderr)
        return self

    def is_production(self) -> bool:
        return self.app_env.lower() in ("production", "prod")


@lru_cache(maxsize=1)
def load_config() -> AppConfig:
    return AppConfig()  # type: ignore[call-arg]


__all__ = [
    "AppConfig",
    "AuthPolicyConfig",
    "DatabaseConfig",
    "PaymentConfig",
    "ResilienceConfig",
    "SecurityConfig",
    "load_config",
]
