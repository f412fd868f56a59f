from dataclasses import dataclass
from typing import Optional, Union

from app.verification.judgment import ClassifierJudgment

ACCEPT_MESSAGE = "Payment verified successfully!"


@dataclass(frozen=True)
class Accept:
    amount: float
    provider: str
    message: str = ACCEPT_MESSAGE


@dataclass(frozen=True)
class Reject:
    reason: str


Decision = Union[Accept, Reject]


def _fmt_amount(v: float) -> str:
    return str(int(v)) if float(v).is_integer() else f"{v:.2f}"


def decide(judgment: ClassifierJudgment, expected_amount: int, expected_provider: Optional[str] = None) -> Decision:
    """
    Turn a classifier judgment into the grant decision.

    Accept only when the classifier says verified AND the amount it read
    covers the plan price; overpayment is fine. A judgment with no
    readable amount can never pass. Pure: no I/O, no state.

    If expected_provider is given, the detected provider must also name it.
    """
    amount_ok = judgment.detectedAmount > 0 and judgment.detectedAmount >= expected_amount
    if judgment.verified is True and amount_ok:
        if expected_provider and expected_provider.lower() not in (judgment.provider or "").lower():
            return Reject(
                reason=f"Payment provider mismatch. Detected {judgment.provider or 'unknown'}, expected {expected_provider}."
            )
        return Accept(amount=judgment.detectedAmount, provider=judgment.provider)

    if judgment.reason:
        return Reject(reason=judgment.reason)

    return Reject(
        reason=f"Amount mismatch. Detected {_fmt_amount(judgment.detectedAmount)}, expected {_fmt_amount(expected_amount)}."
    )
