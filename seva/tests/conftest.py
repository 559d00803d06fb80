from __future__ import annotations

import os
import tempfile
import threading
from dataclasses import replace
from datetime import UTC, datetime, timedelta

_TMP_DIR = tempfile.mkdtemp(prefix="seva-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'seva-test.db')}"
os.environ["APP_ENV"] = "test"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["PHONEPE_MERCHANT_ID"] = "MERCHANTUAT"
os.environ["PHONEPE_SALT_KEY"] = "test-salt-key"
os.environ["PHONEPE_SALT_INDEX"] = "1"
os.environ["PHONEPE_LIVE_REQUESTS"] = "0"
os.environ["ENABLE_RATE_LIMIT"] = "0"
os.environ["SESSION_STORE"] = "database"
os.environ["EMAIL_VERIFICATION_REQUIRED"] = "0"
os.environ["METRICS_ENABLED"] = "1"
os.environ["RESILIENCE_BACKOFF_BASE"] = "0.1"
os.environ["RESILIENCE_BACKOFF_CAP"] = "0.2"
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("LOG_FILE", None)

import pytest  # noqa: E402

from seva.application.services.csrf_guard import CsrfGuard  # noqa: E402
from seva.application.services.session_manager import SessionManager  # noqa: E402
from seva.domain.donations.entities import (  # noqa: E402
    DonationIntent,
    DonationStatus,
    Receipt,
)
from seva.domain.donations.exceptions import DuplicateTransactionIdError  # noqa: E402
from seva.domain.donations.repositories import (  # noqa: E402
    DonationRepository,
    ReceiptNotifier,
)
from seva.domain.users.entities import Role, User, UserStats  # noqa: E402
from seva.domain.users.exceptions import UserAlreadyExistsError  # noqa: E402
from seva.domain.users.repositories import (  # noqa: E402
    AccountNotifier,
    PasswordHasher,
    RememberTokenRepository,
    UserRepository,
)
from seva.infrastructure.sessions.memory_session_store import InMemorySessionStore  # noqa: E402


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class DeterministicHasher(PasswordHasher):
    def __init__(self) -> None:
        self.verify_calls = 0

    def hash(self, password: str) -> str:
        return f"hashed:{password}"

    def verify(self, password: str, hashed: str) -> bool:
        self.verify_calls += 1
        return hashed == f"hashed:{password}"


class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._verification: dict[str, int] = {}
        self._seq = 1
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> User | None:
        for user in self._users.values():
            if user.email == email.lower():
                return user
        return None

    def find_by_id(self, user_id: int) -> User | None:
        return self._users.get(user_id)

    def add(self, user: User, *, verification_token_hash: str | None = None) -> User:
        with self._lock:
            if self.find_by_email(user.email):
                raise UserAlreadyExistsError()
            stored = replace(user, id=self._seq, email=user.email.lower())
            self._seq += 1
            self._users[stored.id] = stored
            if verification_token_hash:
                self._verification[verification_token_hash] = stored.id
            return stored

    def increment_failed_attempts(
        self, user_id: int, *, threshold: int, lockout_until: datetime
    ) -> int:
        with self._lock:
            user = self._users[user_id]
            attempts = user.failed_login_attempts + 1
            self._users[user_id] = replace(
                user,
                failed_login_attempts=attempts,
                lockout_until=lockout_until if attempts >= threshold else user.lockout_until,
            )
            return attempts

    def reset_failed_attempts(self, user_id: int) -> None:
        with self._lock:
            self._users[user_id] = replace(
                self._users[user_id], failed_login_attempts=0, lockout_until=None
            )

    def update_last_login(self, user_id: int, at: datetime) -> None:
        with self._lock:
            self._users[user_id] = replace(self._users[user_id], last_login=at)

    def mark_email_verified(self, token_hash: str) -> User | None:
        with self._lock:
            user_id = self._verification.pop(token_hash, None)
            if user_id is None:
                return None
            self._users[user_id] = replace(self._users[user_id], email_verified=True)
            return self._users[user_id]

    def stats(self, since: datetime) -> UserStats:
        users = list(self._users.values())
        by_role = {role.value: 0 for role in Role}
        for user in users:
            by_role[user.role.value] += 1
        return UserStats(
            total=len(users),
            active=sum(1 for user in users if user.is_active),
            verified=sum(1 for user in users if user.email_verified),
            by_role=by_role,
            registered_last_30_days=sum(1 for user in users if user.created_at >= since),
        )

    def put(self, user: User) -> User:
        """Test helper: store a fully specified user."""
        with self._lock:
            self._users[user.id] = user
            self._seq = max(self._seq, user.id + 1)
            return user


class InMemoryRememberTokenRepository(RememberTokenRepository):
    def __init__(self) -> None:
        self.tokens: dict[str, tuple[int, datetime]] = {}

    def create(self, user_id: int, token_hash: str, expires_at: datetime) -> None:
        self.tokens[token_hash] = (user_id, expires_at)

    def find_user_id(self, token_hash: str, now: datetime) -> int | None:
        entry = self.tokens.get(token_hash)
        if entry is None:
            return None
        user_id, expires_at = entry
        if expires_at <= now:
            self.tokens.pop(token_hash, None)
            return None
        return user_id

    def delete(self, token_hash: str) -> None:
        self.tokens.pop(token_hash, None)

    def purge_expired(self, now: datetime) -> int:
        stale = [h for h, (_, expires_at) in self.tokens.items() if expires_at <= now]
        for token_hash in stale:
            del self.tokens[token_hash]
        return len(stale)


class RecordingAccountNotifier(AccountNotifier):
    def __init__(self) -> None:
        self.sent: list[tuple[User, str]] = []

    def send_verification(self, user: User, token: str) -> None:
        self.sent.append((user, token))


class InMemoryDonationRepository(DonationRepository):
    def __init__(self) -> None:
        self.rows: dict[str, DonationIntent] = {}
        self._seq = 1
        self._lock = threading.Lock()

    def insert_pending(self, intent: DonationIntent) -> DonationIntent:
        with self._lock:
            if intent.transaction_id in self.rows:
                raise DuplicateTransactionIdError()
            stored = replace(intent, id=self._seq, status=DonationStatus.PENDING)
            self._seq += 1
            self.rows[stored.transaction_id] = stored
            return stored

    def find_by_transaction_id(self, transaction_id: str) -> DonationIntent | None:
        return self.rows.get(transaction_id)

    def transition_status(
        self,
        transaction_id: str,
        status: DonationStatus,
        *,
        at: datetime,
        processor_reference: str | None = None,
        failure_reason: str | None = None,
    ) -> bool:
        with self._lock:
            intent = self.rows.get(transaction_id)
            if intent is None or intent.status is not DonationStatus.PENDING:
                return False
            self.rows[transaction_id] = replace(
                intent,
                status=status,
                callback_processed_at=at,
                completed_at=at if status is DonationStatus.COMPLETED else None,
                processor_reference=processor_reference,
                failure_reason=failure_reason,
            )
            return True


class RecordingReceiptNotifier(ReceiptNotifier):
    def __init__(self) -> None:
        self.receipts: list[Receipt] = []
        self.failures: list[tuple[DonationIntent, str | None]] = []

    def send_receipt(self, receipt: Receipt, intent: DonationIntent) -> None:
        self.receipts.append(receipt)

    def send_failure_notice(self, intent: DonationIntent, reason: str | None) -> None:
        self.failures.append((intent, reason))


def make_user(
    user_id: int = 1,
    *,
    email: str = "asha@example.org",
    password: str = "Secret123",
    role: Role = Role.DONOR,
    **overrides: object,
) -> User:
    fields: dict[str, object] = {
        "id": user_id,
        "name": "Asha Rao",
        "email": email,
        "password_hash": f"hashed:{password}",
        "role": role,
        "created_at": datetime(2025, 1, 1, tzinfo=UTC),
        "email_verified": True,
    }
    fields.update(overrides)
    return User(**fields)  # type: ignore[arg-type]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def session_manager(session_store: InMemorySessionStore, clock: FakeClock) -> SessionManager:
    return SessionManager(store=session_store, idle_timeout_s=7200, clock=clock)


@pytest.fixture()
def csrf_guard(session_manager: SessionManager) -> CsrfGuard:
    return CsrfGuard(sessions=session_manager, ttl_s=3600)


@pytest.fixture()
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def remember_tokens() -> InMemoryRememberTokenRepository:
    return InMemoryRememberTokenRepository()


@pytest.fixture()
def hasher() -> DeterministicHasher:
    return DeterministicHasher()


@pytest.fixture()
def reset_database():
    from seva.infrastructure.db import ENGINE, Base, init_db

    init_db()
    Base.metadata.drop_all(bind=ENGINE)
    Base.metadata.create_all(bind=ENGINE)
    yield
    Base.metadata.drop_all(bind=ENGINE)
