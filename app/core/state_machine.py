import time
from typing import Optional

from app.catalog.plans import PaymentMethodInfo, get_method, parse_method
from app.observability.logging import log
from app.store.models import PurchaseAttempt
from app.verification.policy import Accept, Decision

# Purchase attempt states

# Interaction Surface: Plan chosen, waiting for a payment method
# Invariant: method is None
SELECTING_METHOD = "SELECTING_METHOD"

# Interaction Surface: Destination account shown, waiting for a screenshot
AWAITING_EVIDENCE = "AWAITING_EVIDENCE"

# Interaction Surface: One classifier call in flight
# Invariant: no second submission accepted until it resolves
VERIFYING = "VERIFYING"

# Interaction Surface: Terminal; entitlement granted
VERIFIED = "VERIFIED"

# Interaction Surface: Rejected or classifier failure; retry or switch method
FAILED = "FAILED"

GENERIC_FAILURE_REASON = "Could not analyze screenshot. Please try again or contact support."


def _touch(attempt: PurchaseAttempt) -> None:
    attempt.lastUpdatedAtEpoch = int(time.time())


def _refuse(attempt: PurchaseAttempt, event: str) -> bool:
    log(event="invalid_transition", attemptId=attempt.attemptId, state=attempt.state, attempted=event)
    return False


def select_method(attempt: PurchaseAttempt, method) -> bool:
    """SELECTING_METHOD -> AWAITING_EVIDENCE."""
    m = parse_method(method)
    if attempt.state != SELECTING_METHOD or m is None:
        return _refuse(attempt, "select_method")
    attempt.method = m.value
    attempt.state = AWAITING_EVIDENCE
    _touch(attempt)
    return True


def change_method(attempt: PurchaseAttempt) -> bool:
    """AWAITING_EVIDENCE/FAILED -> SELECTING_METHOD, clearing method and failure reason."""
    if attempt.state not in (AWAITING_EVIDENCE, FAILED):
        return _refuse(attempt, "change_method")
    attempt.method = None
    attempt.lastFailureReason = None
    attempt.state = SELECTING_METHOD
    _touch(attempt)
    return True


def begin_verification(attempt: PurchaseAttempt, image: bytes, mime_type: str = "image/jpeg") -> Optional[int]:
    """
    AWAITING_EVIDENCE/FAILED -> VERIFYING.

    Returns the submission ticket the resolution must present, or None if
    the submission is refused (notably while a judgment is in flight).
    Does not await, so check-and-set is atomic on the event loop.
    """
    if attempt.state not in (AWAITING_EVIDENCE, FAILED) or not image:
        _refuse(attempt, "submit_evidence")
        return None
    attempt.submissionSeq += 1
    attempt.evidence = image
    attempt.evidenceMimeType = mime_type
    attempt.lastFailureReason = None
    attempt.state = VERIFYING
    _touch(attempt)
    return attempt.submissionSeq


def _is_current(attempt: PurchaseAttempt, ticket: int) -> bool:
    if attempt.state == VERIFYING and attempt.submissionSeq == ticket:
        return True
    log(
        event="verification_result_discarded",
        attemptId=attempt.attemptId,
        state=attempt.state,
        ticket=ticket,
        currentTicket=attempt.submissionSeq,
    )
    return False


def apply_decision(attempt: PurchaseAttempt, ticket: int, decision: Decision) -> bool:
    """VERIFYING -> VERIFIED or FAILED. Stale tickets are discarded."""
    if not _is_current(attempt, ticket):
        return False
    if isinstance(decision, Accept):
        attempt.state = VERIFIED
        attempt.verifiedAmount = decision.amount
        attempt.verifiedProvider = decision.provider
        attempt.lastFailureReason = None
        attempt.evidence = None
        attempt.evidenceMimeType = None
    else:
        attempt.state = FAILED
        attempt.lastFailureReason = decision.reason or GENERIC_FAILURE_REASON
    _touch(attempt)
    return True


def apply_failure(attempt: PurchaseAttempt, ticket: int) -> bool:
    """VERIFYING -> FAILED with the generic reason (classifier error or timeout)."""
    if not _is_current(attempt, ticket):
        return False
    attempt.state = FAILED
    attempt.lastFailureReason = GENERIC_FAILURE_REASON
    _touch(attempt)
    return True


def can_cancel(attempt: PurchaseAttempt) -> bool:
    # An in-flight classification always resolves onto the attempt
    return attempt.state != VERIFYING


def destination_for(attempt: PurchaseAttempt) -> Optional[PaymentMethodInfo]:
    if attempt.method is None:
        return None
    return get_method(attempt.method)
