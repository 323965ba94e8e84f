import os
from pathlib import Path

import pytest

from pdfsuite import settings


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    settings.get_settings.cache_clear()
    yield
    settings.get_settings.cache_clear()


def test_env_file_values_feed_settings(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# storage for watermark results",
                f"export STORAGE_DIR={tmp_path / 'blobs'}",
                'PDF_WORKER_URL="http://worker.internal:9000/"',
                "BLOB_TTL_SECONDS=90",
                "LOG_LEVEL=",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    for key in ("STORAGE_DIR", "PDF_WORKER_URL", "BLOB_TTL_SECONDS", "LOG_LEVEL"):
        monkeypatch.setenv(key, "stale")

    loaded = settings.load_env_file(path=env_path)
    current = settings.get_settings()

    assert loaded == {
        "STORAGE_DIR": str(tmp_path / "blobs"),
        "PDF_WORKER_URL": "http://worker.internal:9000/",
        "BLOB_TTL_SECONDS": "90",
        "LOG_LEVEL": "",
    }
    assert os.getenv("LOG_LEVEL") == ""
    assert current.storage_dir == (tmp_path / "blobs").resolve()
    assert current.worker_url == "http://worker.internal:9000"
    assert current.blob_ttl_seconds == 90.0
    assert current.log_level == "INFO"


def test_load_env_file_missing_file_is_ignored(tmp_path):
    assert settings.load_env_file(path=tmp_path / "missing.env") == {}


def test_get_settings_reads_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.delenv("STORAGE_DIR", raising=False)
    monkeypatch.setenv("BLOB_TTL_SECONDS", "120")
    monkeypatch.setenv("FETCH_TIMEOUT", "12.5")
    monkeypatch.setenv("PDF_WORKER_URL", "http://worker:8080/")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example")

    loaded = settings.get_settings()

    assert loaded.data_dir == Path(tmp_path).resolve()
    assert loaded.storage_dir == Path(tmp_path).resolve() / "storage"
    assert loaded.blob_ttl_seconds == 120.0
    assert loaded.fetch_timeout == 12.5
    assert loaded.worker_url == "http://worker:8080"
    assert loaded.allowed_origins == ("https://a.example", "https://b.example")


def test_get_settings_rejects_invalid_numbers(monkeypatch):
    monkeypatch.setenv("WORKER_TIMEOUT", "soon")

    with pytest.raises(ValueError) as exc:
        settings.get_settings()
    assert "WORKER_TIMEOUT" in str(exc.value)
