"""
Configuration loader for the lead finder pipeline.

Loads all settings from environment variables (.env file).
Validates required settings and provides type-safe access.
"""

import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """
    Centralized configuration for all pipeline components.

    All values loaded from environment variables - NO SECRETS IN CODE.
    """

    # ===== MongoDB =====
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    LEAD_FINDER_DATABASE: str = os.getenv("LEAD_FINDER_DATABASE", "lead_finder")

    # Repository backend: "mongo" for real persistence, "memory" for dry runs
    LEAD_FINDER_REPOSITORY: str = os.getenv("LEAD_FINDER_REPOSITORY", "mongo").lower()

    # ===== LLM APIs =====
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")

    # ===== Search =====
    GOOGLE_CUSTOM_SEARCH_API_KEY: str = os.getenv("GOOGLE_CUSTOM_SEARCH_API_KEY", "")
    GOOGLE_CUSTOM_SEARCH_ENGINE_ID: str = os.getenv("GOOGLE_CUSTOM_SEARCH_ENGINE_ID", "")

    # ===== Page Fetching =====
    FETCH_USER_AGENT: str = os.getenv(
        "FETCH_USER_AGENT",
        "LeadFinder-Research-Bot/1.0 (Lead Research)"
    )
    FETCH_TIMEOUT_SECONDS: float = float(os.getenv("FETCH_TIMEOUT_SECONDS", "15"))
    RESPECT_ROBOTS_TXT: bool = os.getenv("RESPECT_ROBOTS_TXT", "true").lower() == "true"

    # ===== Rate limiting =====
    # Pause between consecutive third-party calls inside one stage
    INTER_CALL_DELAY_MS: int = int(os.getenv("INTER_CALL_DELAY_MS", "300"))

    # ===== Outreach =====
    # Region the extractor keeps leads for, and who drafts are signed by
    TARGET_REGION: str = os.getenv("TARGET_REGION", "Texas")
    FIRM_NAME: str = os.getenv("FIRM_NAME", "ArcVest")
    SENDER_NAME: str = os.getenv("SENDER_NAME", "Chad Fargason")
    SENDER_TITLE: str = os.getenv("SENDER_TITLE", "Partner, ArcVest")

    # ===== LLM Model Configuration =====
    DEFAULT_MODEL: str = os.getenv("DEFAULT_MODEL", "gpt-4o")  # Extraction + drafting
    CHEAP_MODEL: str = os.getenv("CHEAP_MODEL", "gpt-4o-mini")  # Email pattern prediction

    # Temperature settings
    CREATIVE_TEMPERATURE: float = 0.7  # For outreach drafting
    EXTRACTION_TEMPERATURE: float = float(os.getenv("EXTRACTION_TEMPERATURE", "0.2"))
    PREDICTION_TEMPERATURE: float = 0.3  # For email pattern guesses

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required configuration is present.
        Raises ValueError if critical settings are missing.
        """
        required_settings = {
            "OPENAI_API_KEY": cls.OPENAI_API_KEY,
            "GOOGLE_CUSTOM_SEARCH_API_KEY": cls.GOOGLE_CUSTOM_SEARCH_API_KEY,
            "GOOGLE_CUSTOM_SEARCH_ENGINE_ID": cls.GOOGLE_CUSTOM_SEARCH_ENGINE_ID,
        }

        if cls.LEAD_FINDER_REPOSITORY == "mongo":
            required_settings["MONGODB_URI"] = cls.MONGODB_URI

        missing = [name for name, value in required_settings.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}. "
                f"Please check your .env file."
            )

        if cls.LEAD_FINDER_REPOSITORY not in ("mongo", "memory"):
            raise ValueError(
                f"LEAD_FINDER_REPOSITORY must be 'mongo' or 'memory', "
                f"got '{cls.LEAD_FINDER_REPOSITORY}'"
            )

    @classmethod
    def get_llm_api_key(cls) -> str:
        """Get the API key for pipeline LLM calls."""
        return cls.OPENAI_API_KEY

    @classmethod
    def get_llm_base_url(cls) -> Optional[str]:
        """LLM base URL (None to use OpenAI directly)."""
        return None

    @classmethod
    def inter_call_delay_seconds(cls) -> float:
        return cls.INTER_CALL_DELAY_MS / 1000.0

    @classmethod
    def summary(cls) -> str:
        """Return a summary of the current configuration (safe for logging)."""
        return f"""
Configuration Summary:
  Repository: {cls.LEAD_FINDER_REPOSITORY}
  MongoDB: {'✓ Configured' if cls.MONGODB_URI else '✗ Missing'} (db={cls.LEAD_FINDER_DATABASE})
  LLM: OpenAI {'✓' if cls.get_llm_api_key() else '✗ Missing'}
  Google Search: {'✓ Configured' if cls.GOOGLE_CUSTOM_SEARCH_API_KEY and cls.GOOGLE_CUSTOM_SEARCH_ENGINE_ID else '✗ Missing'}
  Robots.txt: {'Respected' if cls.RESPECT_ROBOTS_TXT else 'Ignored'}
  Default Model: {cls.DEFAULT_MODEL}
  Cheap Model: {cls.CHEAP_MODEL}
        """.strip()
