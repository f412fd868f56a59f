from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response

from app.api.auth import require_api_key
from app.api.normalize import EvidenceDecodeError, decode_evidence
from app.api.schemas import (
    AttemptResponse,
    CreateAttemptRequest,
    Destination,
    EntitlementResponse,
    EvidenceRequest,
    PaymentMethodOut,
    PlanOut,
    SelectMethodRequest,
)
from app.catalog.plans import PAYMENT_METHODS, PLANS, get_plan
from app.core import state_machine as sm
from app.core.entitlement import entitlement
from app.core.orchestrator import run_verification, start_submission
from app.settings import settings
from app.store.attempt_repo import create_attempt, discard_attempt, load_attempt
from app.store.models import PurchaseAttempt

router = APIRouter(dependencies=[Depends(require_api_key)])


def _snapshot(a: PurchaseAttempt) -> AttemptResponse:
    plan = get_plan(a.planId)
    dest = sm.destination_for(a)
    return AttemptResponse(
        attemptId=a.attemptId,
        planId=a.planId,
        planName=plan.name if plan else "",
        amount=plan.price if plan else 0,
        state=a.state,
        method=a.method,
        destination=(
            Destination(method=dest.id, accountName=dest.accountName, accountNumber=dest.accountNumber)
            if dest else None
        ),
        lastFailureReason=a.lastFailureReason,
        verifiedAmount=a.verifiedAmount,
        verifiedProvider=a.verifiedProvider,
    )


def _get_or_404(attempt_id: str) -> PurchaseAttempt:
    a = load_attempt(attempt_id)
    if a is None:
        raise HTTPException(status_code=404, detail="Unknown attempt")
    return a


def _conflict(a: PurchaseAttempt, message: str):
    raise HTTPException(
        status_code=409,
        detail={"message": message, "attempt": _snapshot(a).model_dump(mode="json")},
    )


@router.get("/plans", response_model=List[PlanOut])
async def list_plans():
    return [
        PlanOut(
            id=p.id,
            name=p.name,
            price=p.price,
            duration=p.duration,
            features=list(p.features),
            recommended=p.recommended,
        )
        for p in PLANS
    ]


@router.get("/payment-methods", response_model=List[PaymentMethodOut])
async def list_payment_methods():
    # Account details are only revealed once a method is picked on an attempt
    return [PaymentMethodOut(id=m.id, displayName=m.displayName) for m in PAYMENT_METHODS.values()]


@router.post("/attempts", response_model=AttemptResponse, status_code=201)
async def create(req: CreateAttemptRequest):
    if get_plan(req.planId) is None:
        raise HTTPException(status_code=404, detail="Unknown plan")
    return _snapshot(create_attempt(req.planId))


@router.get("/attempts/{attempt_id}", response_model=AttemptResponse)
async def get_attempt(attempt_id: str):
    return _snapshot(_get_or_404(attempt_id))


@router.post("/attempts/{attempt_id}/method", response_model=AttemptResponse)
async def select_method(attempt_id: str, req: SelectMethodRequest):
    a = _get_or_404(attempt_id)
    if not sm.select_method(a, req.method):
        _conflict(a, "Payment method cannot be selected now")
    return _snapshot(a)


@router.delete("/attempts/{attempt_id}/method", response_model=AttemptResponse)
async def change_method(attempt_id: str):
    a = _get_or_404(attempt_id)
    if not sm.change_method(a):
        _conflict(a, "Payment method cannot be changed now")
    return _snapshot(a)


@router.post("/attempts/{attempt_id}/evidence", response_model=AttemptResponse, status_code=202)
async def submit_evidence(attempt_id: str, req: EvidenceRequest, background: BackgroundTasks):
    """
    Start verifying a receipt screenshot. Returns at once in VERIFYING;
    poll GET /attempts/{id} for VERIFIED or FAILED.
    """
    a = _get_or_404(attempt_id)
    try:
        image, mime = decode_evidence(req.image, req.mimeType)
    except EvidenceDecodeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if len(image) > settings.MAX_EVIDENCE_BYTES:
        raise HTTPException(status_code=413, detail="Screenshot is too large")

    ticket = start_submission(a, image, mime)
    if ticket is None:
        if a.state == sm.VERIFYING:
            _conflict(a, "Already processing a screenshot")
        _conflict(a, "Screenshot cannot be submitted now")

    background.add_task(run_verification, a, ticket)
    return _snapshot(a)


@router.delete("/attempts/{attempt_id}", status_code=204)
async def cancel_attempt(attempt_id: str):
    a = _get_or_404(attempt_id)
    if not sm.can_cancel(a):
        _conflict(a, "Verification in progress")
    discard_attempt(attempt_id)
    return Response(status_code=204)


@router.get("/entitlement", response_model=EntitlementResponse)
async def get_entitlement():
    return EntitlementResponse(
        isPremium=entitlement.is_premium,
        planId=entitlement.plan_id,
        grantedAtEpoch=entitlement.granted_at,
    )
