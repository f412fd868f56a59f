import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    # "production" refuses the demo classifier even if DEMO_MODE is set
    APP_ENV: str = os.getenv("APP_ENV", "development").lower()

    API_KEY: str = os.getenv("API_KEY", "")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    METRICS_ENABLED: bool = os.getenv("METRICS_ENABLED", "true").lower() == "true"

    # Evidence classifier (Gemini vision, REST)
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_REQUEST_TIMEOUT_SEC: float = float(os.getenv("GEMINI_REQUEST_TIMEOUT_SEC", "25.0"))
    # Hard bound on a whole classify() call; exceeding it fails the attempt
    CLASSIFIER_TIMEOUT_SEC: float = float(os.getenv("CLASSIFIER_TIMEOUT_SEC", "30.0"))

    # Demo fallback when no classifier key is configured (never in production)
    DEMO_MODE: bool = os.getenv("DEMO_MODE", "false").lower() == "true"
    DEMO_VERIFY_DELAY_SEC: float = float(os.getenv("DEMO_VERIFY_DELAY_SEC", "2.0"))

    # Policy hardening: require the detected provider to name the selected method
    POLICY_REQUIRE_PROVIDER_MATCH: bool = os.getenv("POLICY_REQUIRE_PROVIDER_MATCH", "false").lower() == "true"

    MAX_EVIDENCE_BYTES: int = int(os.getenv("MAX_EVIDENCE_BYTES", str(8 * 1024 * 1024)))
    # Finished attempts are purged from memory after this many seconds
    ATTEMPT_TTL_SEC: int = int(os.getenv("ATTEMPT_TTL_SEC", "3600"))

    # Destination accounts shown after a method is picked
    JAZZCASH_ACCOUNT_NAME: str = os.getenv("JAZZCASH_ACCOUNT_NAME", "Zeeshan Ali")
    JAZZCASH_ACCOUNT_NUMBER: str = os.getenv("JAZZCASH_ACCOUNT_NUMBER", "0326 4098088")
    EASYPAISA_ACCOUNT_NAME: str = os.getenv("EASYPAISA_ACCOUNT_NAME", "Muhammad Ilyas")
    EASYPAISA_ACCOUNT_NUMBER: str = os.getenv("EASYPAISA_ACCOUNT_NUMBER", "0303 0997911")

    # Security & Privacy
    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"
    ADMIN_RBAC_ENABLED: bool = os.getenv("ADMIN_RBAC_ENABLED", "true").lower() == "true"
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

settings = Settings()
