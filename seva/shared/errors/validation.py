# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Shape of the ``context`` carried by a 400 ``validation_error`` response.

``{"fields": [...sorted dotted paths], "errors": [{"field", "type", "ctx"?}]}``
"""

from __future__ import annotations

from enum import Enum
from typing import Any, NoReturn

from pydantic import ValidationError as PydanticValidationError

from .base import ValidationError

_SCALARS = (str, int, float, bool)


def _error_entry(field: str, error_type: str, ctx: dict[str, Any] | None) -> dict[str, Any]:
    entry: dict[str, Any] = {"field": field, "type": error_type}
    if ctx:
        entry["ctx"] = {k: v if isinstance(v, _SCALARS) else str(v) for k, v in ctx.items()}
    return entry


def format_pydantic_errors(exc: PydanticValidationError) -> dict[str, Any]:
    entries = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error.get("loc", ()) if part is not None)
        entries.append(_error_entry(path or "unknown", error.get("type", "value_error"), error.get("ctx")))
    return {
        "fields": sorted({entry["field"] for entry in entries if entry["field"] != "unknown"}),
        "errors": entries,
    }


def field_error(field: str, error_type: str | Enum, **ctx: Any) -> ValidationError:
    """Single-field failure raised outside pydantic (business rules in use cases)."""
    code = error_type.value if isinstance(error_type, Enum) else error_type
    return ValidationError(context={"fields": [field], "errors": [_error_entry(field, code, ctx)]})


def raise_validation_error(exc: PydanticValidationError) -> NoReturn:
    raise ValidationError(context=format_pydantic_errors(exc)) from exc


__all__ = [
    "field_error",
    "format_pydantic_errors",
    "raise_validation_error",
]
