from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from credential_registry.api import verification as verification_api
from credential_registry.services.verification_service import Verifier
from tests.fakes import FakeIssuanceLookup, FlakyVerificationLogRepo, make_credential

_CRED = {
    "id": "CRED-1",
    "holderName": "Alice",
    "credentialType": "ID Card",
    "issueDate": "2025-01-01",
}


# ---- POST /api/verify ----


def test_verify_issued_credential(
    verification_client: TestClient, fake_lookup: FakeIssuanceLookup
) -> None:
    fake_lookup.add(
        make_credential(), issuer_worker_id="issuer-1", issued_at="2025-01-01T09:30:00.000Z"
    )

    resp = verification_client.post("/api/verify", json={"credential": _CRED})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["verified"] is True
    assert body["message"] == "Credential is valid and has been issued"
    assert body["credential"] == _CRED
    assert body["issuedBy"] == "issuer-1"
    assert body["issuedAt"] == "2025-01-01T09:30:00.000Z"
    assert body["workerId"] == "verifier-test"


def test_verify_unknown_credential_is_200_not_verified(
    verification_client: TestClient,
) -> None:
    resp = verification_client.post("/api/verify", json={"credential": _CRED})
    assert resp.status_code == 200
    body = resp.json()
    assert body["verified"] is False
    assert body["message"] == "Credential not found in issuance records"
    assert "issuedBy" not in body
    assert "credential" not in body


def test_verify_mismatch(
    verification_client: TestClient, fake_lookup: FakeIssuanceLookup
) -> None:
    fake_lookup.add(make_credential())
    resp = verification_client.post(
        "/api/verify", json={"credential": {**_CRED, "credentialType": "Passport"}}
    )
    body = resp.json()
    assert body["verified"] is False
    assert body["message"] == "Credential data does not match issued credential"


def test_verify_presented_expiry_must_match(
    verification_client: TestClient, fake_lookup: FakeIssuanceLookup
) -> None:
    fake_lookup.add(make_credential())
    resp = verification_client.post(
        "/api/verify", json={"credential": {**_CRED, "expiryDate": "2030-01-01"}}
    )
    assert resp.json()["verified"] is False


def test_verify_omitted_expiry_still_matches(
    verification_client: TestClient, fake_lookup: FakeIssuanceLookup
) -> None:
    fake_lookup.add(make_credential(expiry_date="2030-01-01"))
    body = verification_client.post("/api/verify", json={"credential": _CRED}).json()
    assert body["verified"] is True
    assert body["credential"]["expiryDate"] == "2030-01-01"


def test_verify_missing_field_returns_400_without_lookup(
    verification_client: TestClient, fake_lookup: FakeIssuanceLookup
) -> None:
    payload = {k: v for k, v in _CRED.items() if k != "credentialType"}
    resp = verification_client.post("/api/verify", json={"credential": payload})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Credential must have a valid credentialType"
    assert fake_lookup.calls == []


def test_verify_missing_credential_object_returns_400(
    verification_client: TestClient,
) -> None:
    for payload in ({}, {"credential": "CRED-1"}):
        resp = verification_client.post("/api/verify", json=payload)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Credential must be an object"


def test_verify_upstream_down_returns_500_and_logs_nothing(
    verification_client: TestClient, fake_lookup: FakeIssuanceLookup
) -> None:
    fake_lookup.fail_all = True

    resp = verification_client.post("/api/verify", json={"credential": _CRED})
    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Failed to verify credential: Unable to contact issuance service"
    assert body["workerId"] == "worker-test"

    logs = verification_client.get("/api/verify/logs").json()
    assert logs["logs"] == []
    assert logs["stats"]["total"] == 0


# ---- POST /api/verify/batch ----


def test_batch_returns_one_result_per_item_in_order(
    verification_client: TestClient, fake_lookup: FakeIssuanceLookup
) -> None:
    fake_lookup.add(make_credential(id="A"))
    fake_lookup.failing_ids.add("DOWN")

    resp = verification_client.post(
        "/api/verify/batch",
        json={
            "credentials": [
                {**_CRED, "id": "A"},
                {**_CRED, "id": "B"},
                "not-an-object",
                {**_CRED, "id": "DOWN"},
            ]
        },
    )
    assert resp.status_code == 200
    results = resp.json()["results"]
    assert [r["credentialId"] for r in results] == ["A", "B", "", "DOWN"]
    assert [r["verified"] for r in results] == [True, False, False, False]
    assert results[0]["issuedBy"] == "issuer-1"
    assert "error" not in results[1]
    assert results[2]["error"] == "invalid_credential"
    assert results[2]["message"] == "Credential must be an object"
    assert results[3]["error"] == "issuance_service_unavailable"


def test_batch_requires_array(verification_client: TestClient) -> None:
    for payload in ({}, {"credentials": "CRED-1"}):
        resp = verification_client.post("/api/verify/batch", json=payload)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Request must contain an array of credentials"


def test_batch_empty_array(verification_client: TestClient) -> None:
    resp = verification_client.post("/api/verify/batch", json={"credentials": []})
    assert resp.status_code == 200
    assert resp.json()["results"] == []


# ---- GET /api/verify/logs ----


def test_logs_newest_first_with_stats(
    verification_client: TestClient, fake_lookup: FakeIssuanceLookup
) -> None:
    fake_lookup.add(make_credential())
    verification_client.post("/api/verify", json={"credential": _CRED})
    verification_client.post("/api/verify", json={"credential": {**_CRED, "id": "X"}})
    verification_client.post("/api/verify", json={"credential": _CRED})

    body = verification_client.get("/api/verify/logs").json()
    assert body["success"] is True
    assert [e["credentialId"] for e in body["logs"]] == ["CRED-1", "X", "CRED-1"]
    assert body["stats"] == {"total": 3, "verified": 2, "failed": 1}

    newest = body["logs"][0]
    assert newest["verified"] is True
    assert newest["verifierWorkerId"] == "verifier-test"
    assert newest["issuedBy"] == "issuer-1"
    assert newest["loggedAtTimestamp"].endswith("Z")
    assert newest["logId"]


def test_logs_limit_caps_entries_not_stats(
    verification_client: TestClient,
) -> None:
    for i in range(5):
        verification_client.post("/api/verify", json={"credential": {**_CRED, "id": f"C-{i}"}})

    body = verification_client.get("/api/verify/logs", params={"limit": 2}).json()
    assert [e["credentialId"] for e in body["logs"]] == ["C-4", "C-3"]
    assert body["stats"]["total"] == 5


def test_logs_rejects_out_of_range_limit(verification_client: TestClient) -> None:
    for limit in ("0", "1001", "many"):
        resp = verification_client.get("/api/verify/logs", params={"limit": limit})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid query parameter: limit"


# ---- GET /api/verify/logs/{credentialId} ----


def test_logs_for_credential(
    verification_client: TestClient, fake_lookup: FakeIssuanceLookup
) -> None:
    verification_client.post("/api/verify", json={"credential": _CRED})
    fake_lookup.add(make_credential())
    verification_client.post("/api/verify", json={"credential": _CRED})
    verification_client.post("/api/verify", json={"credential": {**_CRED, "id": "OTHER"}})

    body = verification_client.get("/api/verify/logs/CRED-1").json()
    assert body["count"] == 2
    assert [e["verified"] for e in body["logs"]] == [True, False]
    assert {e["credentialId"] for e in body["logs"]} == {"CRED-1"}


def test_logs_for_unknown_credential_is_empty(verification_client: TestClient) -> None:
    resp = verification_client.get("/api/verify/logs/never-seen")
    assert resp.status_code == 200
    assert resp.json()["logs"] == []
    assert resp.json()["count"] == 0


def test_logs_for_credential_id_with_slash(
    verification_client: TestClient, fake_lookup: FakeIssuanceLookup
) -> None:
    fake_lookup.add(make_credential(id="ORG/CRED-7"))
    verification_client.post("/api/verify", json={"credential": {**_CRED, "id": "ORG/CRED-7"}})

    body = verification_client.get("/api/verify/logs/ORG%2FCRED-7").json()
    assert body["count"] == 1
    assert body["logs"][0]["credentialId"] == "ORG/CRED-7"
    assert body["logs"][0]["verified"] is True


# ---- storage faults ----


def test_batch_storage_fault_is_reported_per_item(
    monkeypatch: pytest.MonkeyPatch,
    verification_client: TestClient,
    fake_lookup: FakeIssuanceLookup,
) -> None:
    fake_lookup.add(make_credential(id="CRED-1"))
    fake_lookup.add(make_credential(id="BAD"))
    monkeypatch.setattr(
        verification_api,
        "verifier",
        Verifier(
            fake_lookup, FlakyVerificationLogRepo({"BAD"}), worker_id="verifier-test"
        ),
    )

    resp = verification_client.post(
        "/api/verify/batch",
        json={"credentials": [{**_CRED, "id": "CRED-1"}, {**_CRED, "id": "BAD"}]},
    )
    assert resp.status_code == 200
    results = resp.json()["results"]
    assert results[0]["verified"] is True
    assert results[1]["verified"] is False
    assert results[1]["error"] == "storage_error"


def test_single_verify_storage_fault_returns_500(
    monkeypatch: pytest.MonkeyPatch,
    verification_client: TestClient,
    fake_lookup: FakeIssuanceLookup,
) -> None:
    fake_lookup.add(make_credential())
    monkeypatch.setattr(
        verification_api,
        "verifier",
        Verifier(
            fake_lookup, FlakyVerificationLogRepo({"CRED-1"}), worker_id="verifier-test"
        ),
    )

    resp = verification_client.post("/api/verify", json={"credential": _CRED})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Internal server error"
