import asyncio
import logging
from typing import Protocol

from app.settings import settings
from app.llm import gemini_client
from app.observability.logging import log
from app.verification.judgment import (
    ClassifierError,
    ClassifierJudgment,
    extract_json,
    parse_judgment,
)

logger = logging.getLogger("evidence_classifier")

DEMO_REASON = "Demo Mode: Verified successfully (No API Key)"

JUDGMENT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "verified": {"type": "BOOLEAN"},
        "detectedAmount": {"type": "NUMBER"},
        "provider": {"type": "STRING"},
        "reason": {"type": "STRING"},
    },
    "required": ["verified", "detectedAmount", "provider", "reason"],
}


def build_prompt(expected_amount: int) -> str:
    return (
        "Analyze this payment receipt screenshot commonly used in Pakistan (JazzCash or Easypaisa).\n"
        f"I am expecting a payment of {int(expected_amount)} PKR.\n"
        "\n"
        "Please extract:\n"
        "1. The amount paid.\n"
        "2. The service provider (JazzCash or Easypaisa).\n"
        "3. Whether the transaction looks successful.\n"
        "\n"
        "Return JSON with this schema:\n"
        '{"verified": boolean, "detectedAmount": number, "provider": string, "reason": string}\n'
        "\n"
        "Strictly return valid JSON. If the image is not a receipt or unclear, set verified to false "
        "and explain why in reason."
    )


class EvidenceClassifier(Protocol):
    name: str

    async def classify(self, image: bytes, expected_amount: int, mime_type: str = "image/jpeg") -> ClassifierJudgment:
        ...


class GeminiEvidenceClassifier:
    name = "gemini"

    async def classify(self, image: bytes, expected_amount: int, mime_type: str = "image/jpeg") -> ClassifierJudgment:
        out = await gemini_client.generate_with_image(
            build_prompt(expected_amount),
            image,
            mime_type,
            response_schema=JUDGMENT_SCHEMA,
        )
        return parse_judgment(extract_json(out))


class DemoEvidenceClassifier:
    """Accepts any image after a fixed delay. For local demos and UI work only."""

    name = "demo"

    def __init__(self, delay_sec: float = 2.0):
        self.delay_sec = delay_sec

    async def classify(self, image: bytes, expected_amount: int, mime_type: str = "image/jpeg") -> ClassifierJudgment:
        if self.delay_sec > 0:
            await asyncio.sleep(self.delay_sec)
        return ClassifierJudgment(
            verified=True,
            detectedAmount=float(expected_amount),
            provider="Demo",
            reason=DEMO_REASON,
        )


class UnconfiguredEvidenceClassifier:
    name = "unconfigured"

    async def classify(self, image: bytes, expected_amount: int, mime_type: str = "image/jpeg") -> ClassifierJudgment:
        raise ClassifierError("No evidence classifier configured (set GEMINI_API_KEY)")


def get_classifier() -> EvidenceClassifier:
    """
    Pick the classifier for this process.

    A real key always wins. Without one, the demo classifier is used only
    when DEMO_MODE is explicitly on AND APP_ENV is not production;
    otherwise every submission fails with the generic reason.
    """
    if settings.GEMINI_API_KEY:
        return GeminiEvidenceClassifier()

    if settings.DEMO_MODE:
        if settings.APP_ENV == "production":
            log(event="classifier_demo_mode_refused", appEnv=settings.APP_ENV)
            logger.error("DEMO_MODE ignored in production; evidence cannot be verified")
            return UnconfiguredEvidenceClassifier()
        log(event="classifier_demo_mode", appEnv=settings.APP_ENV, delaySec=settings.DEMO_VERIFY_DELAY_SEC)
        return DemoEvidenceClassifier(delay_sec=settings.DEMO_VERIFY_DELAY_SEC)

    return UnconfiguredEvidenceClassifier()
