from __future__ import annotations

from typing import Literal

UpstreamErrorCode = Literal["rate_limited", "timeout", "failed"]


class UpstreamError(RuntimeError):
    """An embedding or generation call failed; `code` classifies the failure."""

    def __init__(
        self,
        message: str,
        *,
        code: UpstreamErrorCode = "failed",
        service: str = "generation",
        status: int | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.service = service
        self.status = status
