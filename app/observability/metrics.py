"""
Verification Metrics Snapshot
-----------------------------
Lightweight Redis counters/timers for screenshot verification, plus one
snapshot function consumed by /admin/metrics. Recording is best-effort:
a missing or unreachable Redis never affects a verification, it only
leaves the counters stale.
"""
from __future__ import annotations
import time
from typing import List, Tuple
from app.store.redis_conn import get_redis
from app.settings import settings
from app.observability.logging import log

K_SUBMITTED = "metrics:verify:submitted"       # INCR
K_ACCEPTED  = "metrics:verify:accepted"        # INCR
K_REJECTED  = "metrics:verify:rejected"        # INCR
K_ERRORS    = "metrics:verify:classifier_errors"  # INCR
K_TIMEOUTS  = "metrics:verify:timeouts"        # INCR
K_GRANTS    = "metrics:entitlement:grants"     # INCR
K_LATENCY   = "metrics:verify:latencies"       # LPUSH ms

_MAX_SAMPLES = 500  # cap to bound percentile computation cost

def _percentile(data: List[float], p: float) -> float:
    """Deterministic percentile (nearest-rank on sorted data)."""
    if not data:
        return 0.0
    d = sorted(data)
    k = max(1, int(round(p * len(d))))
    return float(d[k - 1])

def _incr(key: str) -> None:
    if not settings.METRICS_ENABLED:
        return
    try:
        get_redis().incr(key, 1)
    except Exception as e:
        log(event="metrics_write_failed", key=key, error=type(e).__name__)

def increment_submitted() -> None:
    _incr(K_SUBMITTED)

def increment_accepted() -> None:
    _incr(K_ACCEPTED)

def increment_rejected() -> None:
    _incr(K_REJECTED)

def increment_classifier_error() -> None:
    _incr(K_ERRORS)

def increment_timeout() -> None:
    _incr(K_TIMEOUTS)

def increment_grant() -> None:
    _incr(K_GRANTS)

def record_verify_latency(ms: int) -> None:
    if not settings.METRICS_ENABLED:
        return
    try:
        ms = int(ms)
    except (TypeError, ValueError):
        return
    try:
        r = get_redis()
        r.lpush(K_LATENCY, ms)
        r.ltrim(K_LATENCY, 0, _MAX_SAMPLES - 1)
    except Exception as e:
        log(event="metrics_write_failed", key=K_LATENCY, error=type(e).__name__)

def _read_latency_list() -> List[float]:
    r = get_redis()
    raw = r.lrange(K_LATENCY, 0, _MAX_SAMPLES - 1) or []
    out: List[float] = []
    for x in raw:
        try:
            out.append(float(x) / 1000.0)  # seconds
        except (TypeError, ValueError):
            continue
    return out

def _p50_p95(latencies_s: List[float]) -> Tuple[float, float]:
    if not latencies_s:
        return 0.0, 0.0
    return _percentile(latencies_s, 0.50), _percentile(latencies_s, 0.95)

def get_verification_snapshot() -> dict:
    """
    Return a dict shaped for /admin/metrics.
    Fields:
      - submitted, accepted, rejected, classifier_errors, timeouts, grants
      - acceptance_rate, failure_rate (percent of resolved submissions)
      - p50_verify_latency, p95_verify_latency (seconds)
    """
    r = get_redis()

    submitted = int(r.get(K_SUBMITTED) or 0)
    accepted = int(r.get(K_ACCEPTED) or 0)
    rejected = int(r.get(K_REJECTED) or 0)
    errors = int(r.get(K_ERRORS) or 0)
    timeouts = int(r.get(K_TIMEOUTS) or 0)
    grants = int(r.get(K_GRANTS) or 0)

    resolved = accepted + rejected + errors + timeouts
    acceptance_rate = (accepted / resolved) * 100.0 if resolved else 0.0
    failure_rate = ((errors + timeouts) / resolved) * 100.0 if resolved else 0.0

    p50, p95 = _p50_p95(_read_latency_list())

    return {
        "submitted": submitted,
        "accepted": accepted,
        "rejected": rejected,
        "classifier_errors": errors,
        "timeouts": timeouts,
        "grants": grants,
        "acceptance_rate": round(acceptance_rate, 3),
        "failure_rate": round(failure_rate, 3),
        "p50_verify_latency": round(p50, 3),
        "p95_verify_latency": round(p95, 3),
        "snapshot_at": int(time.time()),
    }
