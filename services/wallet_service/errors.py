"""Wallet service error taxonomy.

Every error is an ``HTTPException`` so FastAPI renders it without a
translation layer. Batch row failures are never raised; see
``schemas.batch.BatchRowResult``.
"""

from typing import Optional

from fastapi import HTTPException, status


class WalletServiceError(HTTPException):
    """Base class for wallet service errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class NotFound(WalletServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class WalletNotFound(NotFound):
    pass


class TrustNotFound(NotFound):
    pass


class Conflict(WalletServiceError):
    status_code = status.HTTP_409_CONFLICT


class WalletNameConflict(Conflict):
    def __init__(self, name: str):
        super().__init__(f'The wallet "{name}" already exists')
        self.name = name


class InvalidRequest(WalletServiceError):
    """Malformed input, bad filter, or an illegal trust transition."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class Forbidden(WalletServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class PipelineFailure(WalletServiceError):
    """The batch file could not be read or parsed. Nothing was applied."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, cause: Optional[BaseException] = None):
        super().__init__(detail)
        self.cause = cause


class UpstreamFailure(WalletServiceError):
    """A collaborator (ledger, asset store) failed."""

    status_code = status.HTTP_502_BAD_GATEWAY


class InsufficientBalance(InvalidRequest):
    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient balance: need {required} but have {available}"
        )
        self.required = required
        self.available = available
