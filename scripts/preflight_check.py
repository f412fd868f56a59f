#!/usr/bin/env python3
import sys
import os
from typing import List


def check_config(settings) -> List[str]:
    """Configuration problems that would make verification unsafe or useless."""
    problems = []
    if settings.APP_ENV == "production":
        if settings.DEMO_MODE:
            problems.append("DEMO_MODE is set in production; it will be refused")
        if not settings.GEMINI_API_KEY:
            problems.append("GEMINI_API_KEY is not set; every screenshot will fail verification")
        if not settings.API_KEY:
            problems.append("API_KEY is not set; the API is open to any caller")
    if settings.CLASSIFIER_TIMEOUT_SEC <= 0:
        problems.append("CLASSIFIER_TIMEOUT_SEC must be positive")
    return problems


def main() -> int:
    print("Running preflight import check...")
    try:
        os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

        import app.main
        print("Import app.main: OK")

        from app.settings import settings
        from app.llm.classifier import get_classifier
        print(f"Classifier: {get_classifier().name}")

        problems = check_config(settings)
        for p in problems:
            print(f"[WARN] {p}")
        if problems and settings.APP_ENV == "production":
            print("Preflight check FAILED: configuration problems in production.")
            return 1

        print("Preflight check passed.")
        return 0
    except Exception as e:
        print(f"Preflight check FAILED: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
