"""
Transport errors.

Domain guard violations are OperationResult(success=False); TransportError is
the one failure the core lets propagate, to be caught at the UI boundary.
"""
from __future__ import annotations

from typing import Any, Optional

DEFAULT_TRANSPORT_MESSAGE = "Error de conexión con el servidor"


class TransportError(RuntimeError):
    """Backend call failed; message is whatever the backend said, or a generic fallback."""

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = (message or "").strip() or DEFAULT_TRANSPORT_MESSAGE
        self.status_code = status_code
        super().__init__(self.message)


def message_from_payload(payload: Any, default: str = DEFAULT_TRANSPORT_MESSAGE) -> str:
    """Best-effort user message from a backend error body."""
    if isinstance(payload, str):
        return payload.strip() or default
    if isinstance(payload, dict):
        for key in ("message", "mensaje", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return default


def raise_for_response(ok: bool, payload: Any = None, status_code: Optional[int] = None) -> None:
    """Backend responses are only ok / not-ok; no status-code branching beyond that."""
    if not ok:
        raise TransportError(message_from_payload(payload), status_code=status_code)
