import pytest
from fastapi.testclient import TestClient

from app.dependencies.storage import get_storage, get_upload_policy
from app.main import app
from app.storage.local import LocalStorageBackend
from app.storage.validation import UploadPolicy
from tests.constants import ALLOWED_TYPES, MAX_SIZE_BYTES


@pytest.fixture
def storage(tmp_path):
    """Storage backend rooted in a per-test temporary directory."""
    return LocalStorageBackend(
        base_path=str(tmp_path / "uploads"),
        max_size_bytes=MAX_SIZE_BYTES,
    )


@pytest.fixture
def policy():
    """Default upload policy: 5MB, full allow-list, no sniffing."""
    return UploadPolicy(
        max_size_bytes=MAX_SIZE_BYTES,
        allowed_types=ALLOWED_TYPES,
        sniff_content=False,
    )


@pytest.fixture
def client(storage, policy):
    """Test client with storage and policy dependency overrides."""
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_upload_policy] = lambda: policy
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
