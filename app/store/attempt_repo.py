import threading
import time
import uuid
from typing import Dict, Optional

from app.settings import settings
from app.store.models import PurchaseAttempt
from app.core.state_machine import VERIFYING
from app.observability.logging import log

# Attempts live only as long as the process; nothing here is a ledger.
_ATTEMPTS: Dict[str, PurchaseAttempt] = {}
_lock = threading.Lock()


def _purge_expired(now: int) -> None:
    ttl = int(settings.ATTEMPT_TTL_SEC or 0)
    if ttl <= 0:
        return
    # VERIFYING attempts are kept so an in-flight result still has a home
    stale = [
        k for k, a in _ATTEMPTS.items()
        if a.state != VERIFYING and (now - int(a.lastUpdatedAtEpoch or 0)) > ttl
    ]
    for k in stale:
        del _ATTEMPTS[k]
    if stale:
        log(event="attempts_purged", count=len(stale))


def create_attempt(plan_id: str) -> PurchaseAttempt:
    now = int(time.time())
    a = PurchaseAttempt(
        attemptId=uuid.uuid4().hex,
        planId=plan_id,
        createdAtEpoch=now,
        lastUpdatedAtEpoch=now,
    )
    with _lock:
        _purge_expired(now)
        _ATTEMPTS[a.attemptId] = a
    log(event="attempt_created", attemptId=a.attemptId, planId=plan_id)
    return a


def load_attempt(attempt_id: str) -> Optional[PurchaseAttempt]:
    with _lock:
        return _ATTEMPTS.get(attempt_id)


def discard_attempt(attempt_id: str) -> bool:
    with _lock:
        a = _ATTEMPTS.pop(attempt_id, None)
    if a is not None:
        log(event="attempt_discarded", attemptId=attempt_id, state=a.state)
    return a is not None


def clear() -> None:
    with _lock:
        _ATTEMPTS.clear()
