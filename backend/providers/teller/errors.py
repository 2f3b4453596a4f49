"""Teller error body classification.

Teller reports failures as ``{"error": {"code": "enrollment.disconnected",
"message": "..."}}``. The classifier runs on every decoded body, so it must
return None for anything that does not match instead of raising.
"""

from __future__ import annotations

import json

from shared.models import ProviderErrorInfo


ENROLLMENT_FAILURE_PREFIX = "enrollment"


class ProviderError(Exception):
    """Raised when the provider answers with a structured error body."""

    def __init__(self, info: ProviderErrorInfo) -> None:
        super().__init__(info.message)
        self.info = info

    @property
    def code(self) -> str | None:
        return self.info.code

    @property
    def message(self) -> str:
        return self.info.message

    @property
    def is_enrollment_failure(self) -> bool:
        return is_enrollment_failure(self.info)

    def __repr__(self) -> str:
        return f"ProviderError(code={self.code!r}, message={self.message!r})"


def is_enrollment_failure(info: ProviderErrorInfo | None) -> bool:
    """Return whether the error code belongs to the enrollment failure namespace."""

    if info is None or not info.code:
        return False
    return info.code.startswith(ENROLLMENT_FAILURE_PREFIX)


def classify_provider_error(raw: object) -> ProviderErrorInfo | None:
    """Return the structured provider error carried by ``raw``, if any."""

    if isinstance(raw, ProviderError):
        return raw.info

    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None

    if not isinstance(raw, dict):
        return None

    error = raw.get("error")
    if not isinstance(error, dict):
        return None

    message = error.get("message")
    if not isinstance(message, str):
        return None

    code = error.get("code")
    if code is not None and not isinstance(code, str):
        code = str(code)

    return ProviderErrorInfo(code=code or None, message=message)
