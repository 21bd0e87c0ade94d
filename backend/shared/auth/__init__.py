"""Operator authentication shared by the HTTP handlers and their tests."""

from shared.auth.operator_token import (
    DEFAULT_TOKEN_TTL_SECONDS,
    OperatorToken,
    check_operator_password,
    issue_operator_token,
    sign_operator_token,
    verify_operator_token,
)

__all__ = [
    "DEFAULT_TOKEN_TTL_SECONDS",
    "OperatorToken",
    "check_operator_password",
    "issue_operator_token",
    "sign_operator_token",
    "verify_operator_token",
]
