from fastapi import APIRouter, Depends, HTTPException
from app.api.auth import require_admin
from app.store.attempt_repo import load_attempt
import app.observability.metrics as metrics

router = APIRouter(prefix="/admin", tags=["admin"])

@router.get("/attempts/{attempt_id}")
def get_attempt_snapshot(attempt_id: str, _=Depends(require_admin)):
    """Internal view of one attempt, including the submission ticket and grant latch."""
    a = load_attempt(attempt_id)
    if a is None:
        raise HTTPException(status_code=404, detail="Unknown attempt")
    return {
        "attemptId": a.attemptId,
        "planId": a.planId,
        "state": a.state,
        "method": a.method,
        "lastFailureReason": a.lastFailureReason,
        "submissionSeq": int(a.submissionSeq or 0),
        "hasEvidence": a.evidence is not None,
        "evidenceBytes": len(a.evidence or b""),
        "entitlementGranted": bool(a.entitlementGranted),
        "verifiedAmount": a.verifiedAmount,
        "verifiedProvider": a.verifiedProvider,
        "createdAtEpoch": a.createdAtEpoch,
        "lastUpdatedAtEpoch": a.lastUpdatedAtEpoch,
    }

@router.get("/metrics")
def get_metrics(_=Depends(require_admin)):
    """
    Verification counters backed by Redis.
    """
    try:
        return metrics.get_verification_snapshot()
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Metrics unavailable: {type(e).__name__}")
