import asyncio

import pytest

from gradescan import database
from gradescan.config import get_settings, get_version_info
from gradescan.errors import ConfigurationError
from gradescan.utils.concurrency import chunked
from gradescan.utils.vision_ocr_service import VisionOCRService


@pytest.fixture
def clean_db_client():
    database.close_client()
    yield
    database.close_client()


def test_settings_defaults(monkeypatch):
    for name in ("CACHE_TTL_HOURS", "CACHE_MAX_ENTRIES", "BREAKER_FAILURE_THRESHOLD",
                 "BREAKER_RECOVERY_TIMEOUT_MS", "BATCH_CHUNK_SIZE"):
        monkeypatch.delenv(name, raising=False)
    settings = get_settings()
    assert settings.cache_ttl_hours == 24
    assert settings.cache_max_entries == 1000
    assert settings.breaker_failure_threshold == 3
    assert settings.breaker_recovery_timeout_ms == 30000
    assert settings.batch_chunk_size == 3


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("BATCH_CHUNK_SIZE", "5")
    monkeypatch.setenv("CACHE_TTL_HOURS", "0.5")
    monkeypatch.setenv("MARK_DETECTION_URL", "https://detect.example.com/model/1")
    settings = get_settings()
    assert settings.batch_chunk_size == 5
    assert settings.cache_ttl_hours == 0.5
    assert settings.mark_detection_url == "https://detect.example.com/model/1"


def test_version_info(monkeypatch):
    monkeypatch.setenv("GIT_COMMIT_SHA", "abc1234")
    monkeypatch.setenv("ENV", "staging")
    info = get_version_info()
    assert info["git_commit"] == "abc1234"
    assert info["environment"] == "staging"


def test_database_requires_mongo_url(monkeypatch, clean_db_client):
    monkeypatch.delenv("MONGO_URL", raising=False)
    with pytest.raises(ConfigurationError):
        database.get_db()


def test_database_requires_db_name(monkeypatch, clean_db_client):
    monkeypatch.setenv("MONGO_URL", "mongodb://localhost:27017")
    monkeypatch.delenv("DB_NAME", raising=False)
    with pytest.raises(ConfigurationError):
        database.get_db()


def test_chunked():
    assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
    with pytest.raises(ValueError):
        list(chunked([1], 0))


def test_vision_unavailable_raises_configuration_error():
    service = VisionOCRService()
    service._init_attempted = True
    assert service.is_available() is False
    with pytest.raises(ConfigurationError):
        asyncio.run(service.extract_text(b"image"))
