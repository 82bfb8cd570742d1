import logging
import os

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from tenacity import RetryError, Retrying, retry_if_exception, stop_after_attempt, wait_random_exponential

from prize_ledger.models.campaign import Campaign
from prize_ledger.services.errors import Conflict, NotFound


logger = logging.getLogger(__name__)


MAX_ATTEMPTS = int(os.getenv("LEDGER_MAX_ATTEMPTS") or "5")
BACKOFF_SECONDS = float(os.getenv("LEDGER_BACKOFF_SECONDS") or "0.05")
MAX_BACKOFF_SECONDS = float(os.getenv("LEDGER_MAX_BACKOFF_SECONDS") or "1.0")

# serialization_failure, deadlock_detected, lock_not_available
CONTENTION_PGCODES = {"40001", "40P01", "55P03"}
SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked")


def is_contention(e: BaseException) -> bool:
    """Lost an optimistic version check or a lock; anything else is a real failure."""
    if isinstance(e, StaleDataError):
        return True
    if not isinstance(e, OperationalError):
        return False

    orig = getattr(e, "orig", None)
    if getattr(orig, "pgcode", None) in CONTENTION_PGCODES:
        return True

    message = str(orig if orig is not None else e).lower()
    return any(m in message for m in SQLITE_LOCK_MESSAGES)


def run_atomic(
    db: Session,
    work,
    *,
    op: str,
    max_attempts: int | None = None,
    backoff_seconds: float | None = None,
    max_backoff_seconds: float | None = None,
):
    """Run ``work(db)`` and commit, retrying on contention.

    ``work`` must re-read everything it depends on: each attempt starts from
    an expired session. Domain errors and non-contention database errors roll
    back and propagate untouched; contention that outlasts the bound becomes
    ``Conflict``.
    """
    attempts = max(1, max_attempts or MAX_ATTEMPTS)
    base = BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
    cap = MAX_BACKOFF_SECONDS if max_backoff_seconds is None else max_backoff_seconds

    def _attempt():
        # rows loaded before this call may be stale
        db.expire_all()
        try:
            outcome = work(db)
            db.commit()
            return outcome
        except Exception:
            db.rollback()
            raise

    def _log_retry(retry_state):
        logger.warning(
            "ledger contention",
            extra={
                "op": op,
                "attempt": retry_state.attempt_number,
                "max_attempts": attempts,
                "error": str(retry_state.outcome.exception()),
            },
        )

    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_random_exponential(multiplier=base, max=cap),
        retry=retry_if_exception(is_contention),
        before_sleep=_log_retry,
    )

    try:
        return retrying(_attempt)
    except RetryError as e:
        last_error = e.last_attempt.exception()
        logger.warning(
            "ledger contention; giving up",
            extra={"op": op, "max_attempts": attempts, "error": str(last_error)},
        )
        raise Conflict(f"{op} could not be committed after {attempts} attempts; retry") from last_error


def lock_campaign(db: Session, campaign_id) -> Campaign:
    campaign = (
        db.query(Campaign)
        .filter(Campaign.id == campaign_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not campaign:
        raise NotFound("Campaign not found")
    return campaign
