from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

_AUTH_ERROR_CODES = frozenset({"unknown_signer", "bad_sig"})


@dataclass(frozen=True, slots=True)
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    def to_json(self) -> Dict[str, Any]:
        return {"ok": False, "error": {"code": self.code, "message": self.message, "details": self.details}}

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def unauthorized(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(401, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})

    @staticmethod
    def from_rejection(rej: Dict[str, Any]) -> "ApiError":
        """Map an executor rejection ({ok: False, error, reason, details}) to an ApiError.

        Signer authentication failures are 401; everything else is a 400.
        """
        details = rej.get("details")
        code = str(rej.get("error") or "tx_rejected")
        return ApiError(
            401 if code in _AUTH_ERROR_CODES else 400,
            code,
            str(rej.get("reason") or "tx rejected"),
            details if isinstance(details, dict) else {},
        )
