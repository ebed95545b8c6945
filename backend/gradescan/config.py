"""
Configuration - env vars, constants, API key setup.
"""

import os
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel
import google.generativeai as genai

ROOT_DIR = Path(__file__).parent.parent
load_dotenv(ROOT_DIR / '.env')

# Logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("gradescan")

# ============ GCP CREDENTIALS SETUP ============
# Google Cloud Vision reads the credentials path from the environment
gcp_credentials_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
if gcp_credentials_path:
    if not Path(gcp_credentials_path).is_absolute():
        gcp_credentials_path = ROOT_DIR / gcp_credentials_path
    os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = str(gcp_credentials_path)
    logger.info(f"✅ GCP credentials configured at: {gcp_credentials_path}")

# LLM API Key
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")

if not GEMINI_API_KEY:
    logger.warning("⚠️ No GEMINI_API_KEY found - semantic parsing will be unavailable")
else:
    genai.configure(api_key=GEMINI_API_KEY)


class PipelineSettings(BaseModel):
    """Tunables for the extraction pipeline, read from the environment."""
    gcp_credentials_path: Optional[str] = None
    gemini_api_key: Optional[str] = None
    mark_detection_url: Optional[str] = None
    mark_detection_api_key: Optional[str] = None
    mongo_url: Optional[str] = None
    db_name: Optional[str] = None

    cache_ttl_hours: float = 24
    cache_max_entries: int = 1000
    cache_cleanup_interval_seconds: float = 3600

    breaker_failure_threshold: int = 3
    breaker_recovery_timeout_ms: int = 30000

    batch_chunk_size: int = 3


def get_llm_api_key():
    """Get the LLM API key from environment variables."""
    return GEMINI_API_KEY


def get_settings() -> PipelineSettings:
    """Build pipeline settings from the current environment."""
    env = os.environ
    return PipelineSettings(
        gcp_credentials_path=env.get("GOOGLE_APPLICATION_CREDENTIALS"),
        gemini_api_key=env.get("GEMINI_API_KEY"),
        mark_detection_url=env.get("MARK_DETECTION_URL"),
        mark_detection_api_key=env.get("MARK_DETECTION_API_KEY"),
        mongo_url=env.get("MONGO_URL"),
        db_name=env.get("DB_NAME"),
        cache_ttl_hours=float(env.get("CACHE_TTL_HOURS", 24)),
        cache_max_entries=int(env.get("CACHE_MAX_ENTRIES", 1000)),
        cache_cleanup_interval_seconds=float(env.get("CACHE_CLEANUP_INTERVAL_SECONDS", 3600)),
        breaker_failure_threshold=int(env.get("BREAKER_FAILURE_THRESHOLD", 3)),
        breaker_recovery_timeout_ms=int(env.get("BREAKER_RECOVERY_TIMEOUT_MS", 30000)),
        batch_chunk_size=int(env.get("BATCH_CHUNK_SIZE", 3)),
    )


def get_version_info():
    """Get deployment version information."""
    git_commit = os.environ.get("GIT_COMMIT_SHA")
    if not git_commit:
        try:
            if os.path.exists(".git_commit"):
                with open(".git_commit", "r") as f:
                    git_commit = f.read().strip()
        except OSError:
            pass

    if not git_commit:
        git_commit = "unknown"

    build_time = os.environ.get("BUILD_TIME", "unknown")
    env = os.environ.get("ENV", os.environ.get("ENVIRONMENT", "development"))

    return {
        "git_commit": git_commit,
        "build_time": build_time,
        "environment": env
    }
