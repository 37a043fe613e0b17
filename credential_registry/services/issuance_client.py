"""HTTP client for the issuance service, used by the verifier.

Implements the IssuanceLookup protocol over GET /api/credentials/{id}:

  200 with {success, credential, workerId, timestamp} → IssuedCredential
  404                                                 → None (never issued)
  anything else, or no answer within the timeout      → IssuanceServiceUnavailableError

No retries and no circuit breaker: a fault is reported to the verifier's
caller, who decides whether to try again.  The timeout is a hard cutoff
over the whole exchange, not only per socket operation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any
from urllib.parse import quote

import httpx

from credential_registry.core.metrics import ISSUANCE_LOOKUP_DURATION
from credential_registry.models.credential import (
    Credential,
    CredentialValidationError,
    IssuedCredential,
    validate_credential,
)
from credential_registry.services.verification_service import (
    IssuanceServiceUnavailableError,
)

logger = logging.getLogger(__name__)


def credential_path(credential_id: str) -> str:
    """Lookup path for an id, escaped so it stays one path segment.

    "/" is percent-encoded, and bare "." / ".." ids are encoded too:
    clients drop dot segments while normalising the URL.
    """
    segment = quote(credential_id, safe="")
    if segment in (".", ".."):
        segment = segment.replace(".", "%2E")
    return f"/api/credentials/{segment}"


class HttpIssuanceLookup:
    """Async lookup against a running issuance service.

    Pass `client` to reuse an existing httpx.AsyncClient (tests pass one
    built on httpx.ASGITransport or httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
        )

    async def close(self) -> None:
        await self._http.aclose()

    async def get_issued(self, credential_id: str) -> IssuedCredential | None:
        path = credential_path(credential_id)
        start = time.monotonic()
        try:
            async with asyncio.timeout(self._timeout):
                response = await self._http.get(path)
        except (TimeoutError, httpx.TimeoutException) as e:
            raise IssuanceServiceUnavailableError(
                f"Issuance service timed out after {self._timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise IssuanceServiceUnavailableError(
                f"Issuance service request failed: {e!r}"
            ) from e
        finally:
            ISSUANCE_LOOKUP_DURATION.observe(time.monotonic() - start)

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise IssuanceServiceUnavailableError(
                f"Issuance service returned {response.status_code}: "
                f"{response.text[:200]}"
            )
        return _parse_found(response)


def _parse_found(response: httpx.Response) -> IssuedCredential:
    try:
        body: Any = response.json()
    except ValueError as e:
        raise IssuanceServiceUnavailableError(
            "Issuance service returned a non-JSON body"
        ) from e

    if not isinstance(body, dict) or body.get("success") is not True:
        raise IssuanceServiceUnavailableError(
            "Issuance service returned an unexpected body"
        )

    raw = body.get("credential")
    issued_by = body.get("workerId")
    issued_at = body.get("timestamp")
    if (
        not isinstance(raw, dict)
        or not isinstance(issued_by, str)
        or not isinstance(issued_at, str)
    ):
        raise IssuanceServiceUnavailableError(
            "Issuance service response is missing credential provenance"
        )

    credential = Credential.from_dict(raw)
    try:
        validate_credential(credential)
    except CredentialValidationError as e:
        raise IssuanceServiceUnavailableError(
            f"Issuance service returned a malformed credential: {e}"
        ) from e

    logger.debug("Fetched issued credential id=%s from %s", credential.id, issued_by)
    return IssuedCredential(
        credential=credential, issuer_worker_id=issued_by, issued_at=issued_at
    )
