import asyncio
import logging
import time
from typing import Optional

from app.settings import settings
from app.catalog.plans import get_plan
from app.core import state_machine as sm
from app.core.entitlement import entitlement
from app.llm.classifier import EvidenceClassifier, get_classifier
from app.observability.logging import log
import app.observability.metrics as metrics
from app.store.models import PurchaseAttempt
from app.verification.judgment import ClassifierJudgment, MalformedJudgment
from app.verification.policy import Accept, decide

logger = logging.getLogger("verification_orchestrator")


async def run_verification(
    attempt: PurchaseAttempt,
    ticket: int,
    classifier: Optional[EvidenceClassifier] = None,
) -> None:
    """
    Resolve one submission started by begin_verification().

    Every classifier-side failure (error, malformed output, timeout)
    ends as FAILED with the generic reason; nothing is raised to the
    caller. The grant happens only after VERIFIED has been committed.
    """
    plan = get_plan(attempt.planId)
    image = attempt.evidence
    mime_type = attempt.evidenceMimeType or "image/jpeg"

    if plan is None or not image:
        # Attempt was built around an unknown plan or lost its evidence
        log(event="verification_precondition_failed", attemptId=attempt.attemptId, planId=attempt.planId)
        sm.apply_failure(attempt, ticket)
        return

    classifier = classifier or get_classifier()
    start = time.time()

    try:
        judgment = await asyncio.wait_for(
            classifier.classify(image, plan.price, mime_type),
            timeout=settings.CLASSIFIER_TIMEOUT_SEC,
        )
        if not isinstance(judgment, ClassifierJudgment):
            raise MalformedJudgment(f"Classifier returned {type(judgment).__name__}, not a judgment")
        expected_provider = attempt.method if settings.POLICY_REQUIRE_PROVIDER_MATCH else None
        decision = decide(judgment, plan.price, expected_provider=expected_provider)
    except asyncio.TimeoutError:
        metrics.increment_timeout()
        log(
            event="classifier_timeout",
            attemptId=attempt.attemptId,
            ticket=ticket,
            classifier=getattr(classifier, "name", "unknown"),
            timeoutSec=settings.CLASSIFIER_TIMEOUT_SEC,
        )
        sm.apply_failure(attempt, ticket)
        return
    except Exception as e:
        metrics.increment_classifier_error()
        logger.warning("classifier_failed err=%s", type(e).__name__)
        log(
            event="classifier_error",
            attemptId=attempt.attemptId,
            ticket=ticket,
            classifier=getattr(classifier, "name", "unknown"),
            error=type(e).__name__,
            detail=str(e),
        )
        sm.apply_failure(attempt, ticket)
        return
    finally:
        metrics.record_verify_latency(int((time.time() - start) * 1000))

    if not sm.apply_decision(attempt, ticket, decision):
        return

    if isinstance(decision, Accept):
        metrics.increment_accepted()
        log(
            event="verification_accepted",
            attemptId=attempt.attemptId,
            planId=plan.id,
            method=attempt.method,
            detectedAmount=judgment.detectedAmount,
            provider=judgment.provider,
        )
        if not attempt.entitlementGranted:
            attempt.entitlementGranted = True
            if entitlement.grant(plan.id):
                metrics.increment_grant()
    else:
        metrics.increment_rejected()
        log(
            event="verification_rejected",
            attemptId=attempt.attemptId,
            planId=plan.id,
            method=attempt.method,
            detectedAmount=judgment.detectedAmount,
            verified=judgment.verified,
        )


def start_submission(attempt: PurchaseAttempt, image: bytes, mime_type: str = "image/jpeg") -> Optional[int]:
    """Move the attempt into VERIFYING. Returns the ticket, or None if refused."""
    ticket = sm.begin_verification(attempt, image, mime_type)
    if ticket is not None:
        metrics.increment_submitted()
        log(
            event="evidence_submitted",
            attemptId=attempt.attemptId,
            ticket=ticket,
            method=attempt.method,
            sizeBytes=len(image),
            mimeType=mime_type,
        )
    return ticket


async def submit_evidence(
    attempt: PurchaseAttempt,
    image: bytes,
    mime_type: str = "image/jpeg",
    classifier: Optional[EvidenceClassifier] = None,
) -> bool:
    """Submit and wait for the resolution. False if the submission was refused."""
    ticket = start_submission(attempt, image, mime_type)
    if ticket is None:
        return False
    await run_verification(attempt, ticket, classifier)
    return True
