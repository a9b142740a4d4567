"""
Error taxonomy for the commission ledger services.

Services raise these; the API layer turns them into JSON responses
with the status code carried by each class.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400
    code: str = "ledger_error"

    def __init__(self, message: str, current_state: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.current_state = current_state

    def to_dict(self) -> dict:
        payload = {"detail": self.message, "error": self.code}
        if self.current_state is not None:
            payload["current_state"] = self.current_state
        return payload


# ── Validation ────────────────────────────────────────────


class ValidationError(LedgerError):
    """Bad input shape or range."""
    status_code = 400
    code = "validation_error"


class AmountOutOfRange(ValidationError):
    code = "amount_out_of_range"


class BankDetailsMissing(ValidationError):
    code = "bank_details_missing"


class ReferredUserKindMismatch(ValidationError):
    code = "referred_user_kind_mismatch"


# ── Not found ─────────────────────────────────────────────


class NotFoundError(LedgerError):
    status_code = 404
    code = "not_found"


class ActorNotFound(NotFoundError):
    code = "actor_not_found"


class ReferrerNotFound(ActorNotFound):
    code = "referrer_not_found"


class AgentNotFound(ActorNotFound):
    code = "agent_not_found"


class TierNotFound(NotFoundError):
    code = "tier_not_found"


class WithdrawalNotFound(NotFoundError):
    code = "withdrawal_not_found"


# ── Conflicts ─────────────────────────────────────────────


class ConflictError(LedgerError):
    """State-machine violation; carries the current state so callers can resync."""
    status_code = 409
    code = "conflict"


class AlreadyProcessed(ConflictError):
    code = "already_processed"


class TierInUse(ConflictError):
    code = "tier_in_use"


# ── Balance / configuration ──────────────────────────────


class InsufficientBalanceError(LedgerError):
    status_code = 400
    code = "insufficient_balance"


class ConfigurationError(LedgerError):
    status_code = 500
    code = "configuration_error"


class ConfigurationMissing(ConfigurationError):
    code = "configuration_missing"


# ── Storage ───────────────────────────────────────────────


class StorageError(LedgerError):
    """Unrecoverable persistence failure."""
    status_code = 503
    code = "storage_error"


class TransientError(StorageError):
    """Timeout or lost connection; safe for the caller to retry after re-reading state."""
    code = "transient_error"


@asynccontextmanager
async def storage_errors() -> AsyncGenerator[None, None]:
    """
    Translate persistence failures into StorageError / TransientError.

    Domain errors raised inside the block pass through unchanged.
    """
    try:
        yield
    except LedgerError:
        raise
    except (PoolTimeoutError, asyncio.TimeoutError) as e:
        logger.warning(f"Persistence timeout: {e}")
        raise TransientError("Database operation timed out") from e
    except OperationalError as e:
        logger.warning(f"Persistence operational error: {e}")
        raise TransientError("Database temporarily unavailable") from e
    except DBAPIError as e:
        if e.connection_invalidated:
            logger.warning(f"Database connection lost: {e}")
            raise TransientError("Database connection lost") from e
        logger.error(f"Database error: {e}")
        raise StorageError("Database error") from e
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        raise StorageError("Database error") from e
