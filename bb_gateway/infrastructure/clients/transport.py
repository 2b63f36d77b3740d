"""Mutual-TLS HTTP transport for the Banco do Brasil API"""

import logging
import os
import ssl
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Mapping, Optional

import httpx

from bb_gateway.config import settings
from bb_gateway.domain.exceptions import (
    CertificatesNotFound,
    HttpStatusError,
    MalformedResponse,
    TransportError,
)
from bb_gateway.domain.models import CertificateSet
from bb_gateway.infrastructure.observability.logging import redact_headers
from bb_gateway.infrastructure.observability.metrics import bank_request_latency_histogram

logger = logging.getLogger(__name__)


def build_ssl_context(certificates: CertificateSet, ciphers: str | None = None) -> ssl.SSLContext:
    """
    TLS client context trusting only the connection's CA bundle and presenting
    its client certificate. Peer verification and hostname checks stay on.

    Raises:
        CertificatesNotFound: a file is missing, empty or unreadable as a certificate/key
    """
    connection_id = os.path.basename(os.path.dirname(certificates.ca_cert_path))
    missing = [p for p in certificates.paths() if not os.path.isfile(p) or os.path.getsize(p) == 0]
    if missing:
        raise CertificatesNotFound(connection_id, f"missing or empty certificate files {missing}")

    with open(certificates.ca_cert_path, "rb") as f:
        ca_data = f.read()
    # ca.cer is PEM or DER depending on how the bank bundle was exported
    cadata = ca_data.decode("ascii") if b"-----BEGIN" in ca_data else ca_data

    try:
        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cadata=cadata)
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        context.verify_mode = ssl.CERT_REQUIRED
        context.check_hostname = True
        context.set_ciphers(ciphers or settings.tls_ciphers)
        context.load_cert_chain(certificates.client_cert_path, certificates.private_key_path)
    except (ssl.SSLError, ValueError) as e:
        raise CertificatesNotFound(connection_id, f"invalid certificate material ({e})") from e
    return context


class MTLSSession:
    """Open connection pool bound to one certificate set"""

    def __init__(self, client: httpx.AsyncClient, timeout: float):
        self._client = client
        self._timeout = timeout

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        """
        Send a request and parse the JSON body.

        Raises:
            TransportError: connection failure or timeout
            HttpStatusError: non-2xx status (no retry)
            MalformedResponse: 2xx with a body that is not JSON
        """
        headers = dict(headers or {})
        logger.debug(
            "Bank API request",
            extra={"method": method, "url": url, "params": dict(params or {}), "headers": redact_headers(headers)},
        )

        try:
            with bank_request_latency_histogram.time():
                response = await self._client.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    json=body,
                )
        except httpx.TimeoutException as e:
            raise TransportError(f"Bank API timeout after {self._timeout}s") from e
        except httpx.RequestError as e:
            raise TransportError(f"Bank API connection error: {e}") from e

        if not response.is_success:
            logger.error(
                "Bank API returned error status",
                extra={"status_code": response.status_code, "url": url},
            )
            raise HttpStatusError(response.status_code, response.reason_phrase)

        if not response.content or not response.content.strip():
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"Invalid JSON from bank API ({response.status_code}): {e}") from e


class MTLSTransport:
    """Creates mTLS sessions for the bank API"""

    def __init__(
        self,
        timeout: float | None = None,
        ciphers: str | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout or settings.http_timeout_seconds
        self.ciphers = ciphers or settings.tls_ciphers
        # Swappable for tests; a custom transport owns the socket layer
        self.http_transport = http_transport

    @asynccontextmanager
    async def connect(self, certificates: CertificateSet) -> AsyncIterator[MTLSSession]:
        """Session reusing one TLS context and connection pool across requests"""
        context = build_ssl_context(certificates, self.ciphers)
        client_kwargs: Dict[str, Any] = {"timeout": self.timeout}
        if self.http_transport is not None:
            client_kwargs["transport"] = self.http_transport
        else:
            client_kwargs["verify"] = context

        async with httpx.AsyncClient(**client_kwargs) as client:
            yield MTLSSession(client, self.timeout)

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]],
        certificates: CertificateSet,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        """One-shot request over a fresh session"""
        async with self.connect(certificates) as session:
            return await session.request(method, url, headers=headers, params=params, body=body)
