import pytest
from fastapi.testclient import TestClient

from safestore_backend.app.core.config import Settings
from safestore_backend.app.crypto import EncryptionEngine
from safestore_backend.app.main import create_app
from safestore_backend.app.storage import StorageDirectory

TEST_KEY_HEX = "000102030405060708090a0b0c0d0e0f101112131415161718191a1b1c1d1e1f"
TEST_MAX_BYTES = 1024


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def engine():
    return EncryptionEngine(bytes.fromhex(TEST_KEY_HEX))


@pytest.fixture
def storage(upload_dir, engine):
    return StorageDirectory(upload_dir, engine, max_upload_bytes=TEST_MAX_BYTES)


@pytest.fixture
def test_settings(upload_dir):
    cfg = Settings()
    cfg.UPLOAD_DIR = str(upload_dir)
    cfg.ENCRYPTION_KEY = TEST_KEY_HEX
    cfg.MAX_UPLOAD_BYTES = TEST_MAX_BYTES
    return cfg


@pytest.fixture
def client(test_settings):
    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client
