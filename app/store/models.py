from dataclasses import dataclass
from typing import Optional

@dataclass
class PurchaseAttempt:
    # Core identifiers
    attemptId: str = ""
    planId: str = ""

    # State
    state: str = "SELECTING_METHOD"  # SELECTING_METHOD/AWAITING_EVIDENCE/VERIFYING/VERIFIED/FAILED
    method: Optional[str] = None
    lastFailureReason: Optional[str] = None

    # Latest evidence; dropped once VERIFIED
    evidence: Optional[bytes] = None
    evidenceMimeType: Optional[str] = None

    # Bumped on every accepted submission. A classifier resolution only
    # applies if it carries the current value.
    submissionSeq: int = 0

    # What the classifier read on the accepted submission
    verifiedAmount: Optional[float] = None
    verifiedProvider: Optional[str] = None

    # At most one grant per attempt
    entitlementGranted: bool = False

    createdAtEpoch: int = 0
    lastUpdatedAtEpoch: int = 0
