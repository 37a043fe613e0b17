from __future__ import annotations

import os
import sys
from pathlib import Path

# Settings are resolved at import time; pin them before the apps load.
os.environ["APP_ENV"] = "test"
os.environ["POD_NAME"] = "worker-test"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("LOG_JSON", None)

# Ensure repo root is on sys.path so `import credential_registry` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from credential_registry.api import issuance as issuance_api  # noqa: E402
from credential_registry.api import verification as verification_api  # noqa: E402
from credential_registry.issuance_main import app as issuance_app  # noqa: E402
from credential_registry.services.issuance_client import (  # noqa: E402
    HttpIssuanceLookup,
)
from credential_registry.services.verification_service import Verifier  # noqa: E402
from credential_registry.verification_main import (  # noqa: E402
    app as verification_app,
)
from tests.fakes import FakeIssuanceLookup  # noqa: E402

VERIFIER_WORKER_ID = "verifier-test"


@pytest.fixture(autouse=True)
def reset_credential_store() -> None:
    """Clear issued credentials between tests."""
    if hasattr(issuance_api.credential_repo, "_records"):
        issuance_api.credential_repo._records.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_verification_log() -> None:
    """Clear the verification log between tests."""
    if hasattr(verification_api.log_repo, "_entries"):
        verification_api.log_repo._entries.clear()  # type: ignore[union-attr]


@pytest.fixture
def issuance_client() -> TestClient:
    return TestClient(issuance_app)


@pytest.fixture
def fake_lookup() -> FakeIssuanceLookup:
    return FakeIssuanceLookup()


@pytest.fixture
def verification_client(
    monkeypatch: pytest.MonkeyPatch, fake_lookup: FakeIssuanceLookup
) -> TestClient:
    """Verification app whose issuance lookup is an in-process fake."""
    monkeypatch.setattr(
        verification_api,
        "verifier",
        Verifier(fake_lookup, verification_api.log_repo, worker_id=VERIFIER_WORKER_ID),
    )
    return TestClient(verification_app)


@pytest.fixture
def wired_verification_client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    """Verification app talking HTTP to the real issuance app in-process."""
    http = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=issuance_app),
        base_url="http://issuance-service",
    )
    lookup = HttpIssuanceLookup("http://issuance-service", client=http)
    monkeypatch.setattr(
        verification_api,
        "verifier",
        Verifier(lookup, verification_api.log_repo, worker_id=VERIFIER_WORKER_ID),
    )
    return TestClient(verification_app)
