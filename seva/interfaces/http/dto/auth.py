from __future__ import annotations

import re

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

from seva.domain.users.entities import Role
from seva.shared.config import load_config
from seva.shared.errors.validation_types import ValidationErrorType


def _parse_role(value: str | None) -> Role | None:
    try:
        return Role.parse(value)
    except ValueError as exc:
        raise PydanticCustomError(
            ValidationErrorType.ROLE_INVALID,
            "Unknown user type",
            {"allowed": ",".join(role.value for role in Role)},
        ) from exc


class LoginRequestDTO(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=256)  # No strength check on login
    user_type: Role | None = None
    remember_me: bool = False

    @field_validator("user_type", mode="before")
    @classmethod
    def validate_user_type(cls, value: object) -> Role | None:
        if value is None or isinstance(value, Role):
            return value
        return _parse_role(str(value))


class RegisterRequestDTO(BaseModel):
    name: str = Field(max_length=128)
    email: EmailStr
    password: str = Field(max_length=256)
    confirm_password: str
    phone: str | None = None
    user_type: Role = Role.DONOR
    newsletter: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise PydanticCustomError(
                ValidationErrorType.NAME_TOO_SHORT,
                "Name must be at least 2 characters long",
                {"min_length": 2},
            )
        return value

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, value: str) -> str:
        min_length = load_config().auth.password_min_length
        if len(value) < min_length:
            raise PydanticCustomError(
                ValidationErrorType.PASSWORD_TOO_SHORT,
                "Password must be at least {min_length} characters long",
                {"min_length": min_length},
            )

        if not re.search(r"[A-Z]", value):
            raise PydanticCustomError(
                ValidationErrorType.PASSWORD_NO_UPPERCASE,
                "Password must contain at least one uppercase letter",
                {},
            )

        if not re.search(r"[a-z]", value):
            raise PydanticCustomError(
                ValidationErrorType.PASSWORD_NO_LOWERCASE,
                "Password must contain at least one lowercase letter",
                {},
            )

        if not re.search(r"\d", value):
            raise PydanticCustomError(
                ValidationErrorType.PASSWORD_NO_DIGIT,
                "Password must contain at least one digit",
                {},
            )

        return value

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if not value or not value.strip():
            return None
        digits = re.sub(r"\D", "", value)
        if not 10 <= len(digits) <= 15:
            raise PydanticCustomError(
                ValidationErrorType.PHONE_INVALID,
                "Phone number must contain 10 to 15 digits",
                {},
            )
        return digits

    @field_validator("user_type", mode="before")
    @classmethod
    def validate_user_type(cls, value: object) -> Role:
        role = value if isinstance(value, Role) else _parse_role(None if value is None else str(value))
        if role is None:
            return Role.DONOR
        if role is Role.ADMIN:
            raise PydanticCustomError(
                ValidationErrorType.ROLE_INVALID,
                "Only donor and volunteer accounts can be registered",
                {"allowed": "donor,volunteer"},
            )
        return role

    @model_validator(mode="after")
    def validate_confirmation(self) -> RegisterRequestDTO:
        if self.password != self.confirm_password:
            raise PydanticCustomError(
                ValidationErrorType.PASSWORD_MISMATCH,
                "Passwords do not match",
                {},
            )
        return self
