import json
import math
from dataclasses import dataclass
from typing import Any, Dict


class ClassifierError(RuntimeError):
    """Raised when the evidence classifier cannot produce a judgment."""


class MalformedJudgment(ClassifierError):
    """Classifier output could not be read as a judgment object."""


@dataclass(frozen=True)
class ClassifierJudgment:
    verified: bool = False
    detectedAmount: float = 0.0
    provider: str = ""
    reason: str = ""

    def __post_init__(self):
        # Judgments may be built directly by a classifier, not only via
        # parse_judgment; the same failing-value coercion applies.
        object.__setattr__(self, "verified", self.verified is True)
        object.__setattr__(self, "detectedAmount", _amount(self.detectedAmount))
        object.__setattr__(self, "provider", _text(self.provider))
        object.__setattr__(self, "reason", _text(self.reason))


def extract_json(text: str) -> Dict[str, Any]:
    """
    Robustly parse JSON from model output.
    1) Try json.loads on full string
    2) If that fails, find first '{' and use JSONDecoder.raw_decode to parse first JSON object
    """
    if not text:
        raise MalformedJudgment("Empty model output")

    s = text.strip()

    # Fast path: exact JSON
    try:
        return json.loads(s)
    except ValueError:
        pass

    start = s.find("{")
    if start == -1:
        raise MalformedJudgment("No JSON object found in model output")

    decoder = json.JSONDecoder()
    try:
        obj, _ = decoder.raw_decode(s[start:])
    except ValueError as e:
        raise MalformedJudgment(f"Unparseable JSON in model output: {e}") from e
    return obj


def _amount(v) -> float:
    # bool is an int subclass; never read True as 1 PKR
    if isinstance(v, bool) or v is None:
        return 0.0
    if isinstance(v, (int, float)):
        f = float(v)
    elif isinstance(v, str):
        try:
            f = float(v.replace(",", "").strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isnan(f) or math.isinf(f) or f < 0:
        return 0.0
    return f


def _text(v) -> str:
    return v.strip() if isinstance(v, str) else ""


def parse_judgment(data: Any) -> ClassifierJudgment:
    """
    Build a judgment from untrusted classifier output.

    Missing or mistyped fields become failing values (verified=False,
    amount 0, empty strings); only a non-object payload is an error.
    """
    if not isinstance(data, dict):
        raise MalformedJudgment(f"Judgment must be a JSON object, got {type(data).__name__}")

    return ClassifierJudgment(
        verified=data.get("verified") is True,
        detectedAmount=_amount(data.get("detectedAmount")),
        provider=_text(data.get("provider")),
        reason=_text(data.get("reason")),
    )
