"""Banco do Brasil statement client - paginated extrato fetch over mTLS"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from bb_gateway.config import settings
from bb_gateway.domain.balance import extract_balance
from bb_gateway.domain.classification import normalize_items
from bb_gateway.domain.exceptions import (
    BankIntegrationError,
    CredentialsInsufficient,
    MalformedResponse,
    TransportError,
)
from bb_gateway.domain.models import AccountBalance, AggregatedStatement, StatementPage, StatementRequest
from bb_gateway.domain.rules import ClassificationRules, DEFAULT_RULES
from bb_gateway.infrastructure.clients.transport import MTLSSession, MTLSTransport
from bb_gateway.infrastructure.observability.metrics import bank_pages_fetched_counter, record_bank_failure
from bb_gateway.infrastructure.security.certificates import CertificateManager
from bb_gateway.infrastructure.security.credentials import CredentialResolver
from bb_gateway.utils.date_utils import format_wire_period

logger = logging.getLogger(__name__)

# Where different API versions put the line items
_ITEM_PATHS = (("listaLancamento",), ("lancamentos",), ("data", "listaLancamento"), ("data", "lancamentos"))


def strip_leading_zeros(value: str) -> str:
    return str(value).strip().lstrip("0") or "0"


def build_statement_url(base_url: str, agency: str, account: str) -> str:
    return (
        f"{base_url.rstrip('/')}/conta-corrente/agencia/{strip_leading_zeros(agency)}"
        f"/conta/{strip_leading_zeros(account)}"
    )


def build_headers(token: str, app_key: str) -> Dict[str, str]:
    """Request headers; the gateway requires the app key under both names"""
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/json",
        "Content-Type": "application/json",
        "gw-dev-app-key": app_key,
        "X-Application-Key": app_key,
    }


def _find_items(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    for path in _ITEM_PATHS:
        node: Any = data
        for key in path:
            node = node.get(key) if isinstance(node, dict) else None
        if isinstance(node, list):
            return node
    return []


def parse_statement_page(data: Any) -> StatementPage:
    """
    Raises:
        MalformedResponse: payload is not an object or totals are not integers
    """
    if not isinstance(data, dict):
        raise MalformedResponse(f"Expected statement object, got {type(data).__name__}")
    items = _find_items(data)
    try:
        total_pages = int(data.get("quantidadeTotalPagina") or 1)
        total_records = int(data.get("quantidadeTotalRegistro") or len(items))
    except (TypeError, ValueError) as e:
        raise MalformedResponse(f"Invalid pagination totals: {e}") from e
    return StatementPage(total_pages=max(total_pages, 1), total_record_count=total_records, items=items)


class BBStatementClient:
    """Client for the Banco do Brasil extratos API"""

    def __init__(
        self,
        certificate_manager: CertificateManager,
        credential_resolver: Optional[CredentialResolver] = None,
        transport: Optional[MTLSTransport] = None,
        base_url: str | None = None,
        rules: ClassificationRules = DEFAULT_RULES,
        deadline_seconds: float | None = None,
    ):
        self.certificate_manager = certificate_manager
        self.credential_resolver = credential_resolver
        self.transport = transport or MTLSTransport()
        self.base_url = base_url or settings.bb_api_base
        self.rules = rules
        self.deadline_seconds = deadline_seconds if deadline_seconds is not None else settings.statement_deadline_seconds

    def _token(self, request: StatementRequest) -> str:
        if self.credential_resolver is None:
            token = request.connection_ref
        else:
            token = self.credential_resolver.resolve_token(request.connection_ref, request.wallet_ref)
        if not token or not request.app_key:
            raise CredentialsInsufficient("Bearer token and application key are required")
        return token

    def _params(self, request: StatementRequest, page_number: int, date_from: str, date_to: str) -> Dict[str, str]:
        return {
            "numeroPagina": str(page_number),
            "quantidadeRegistros": str(request.page_size),
            "dataInicioSolicitacao": date_from,
            "dataFimSolicitacao": date_to,
        }

    async def _get_page(
        self, session: MTLSSession, url: str, headers: Dict[str, str], params: Dict[str, str]
    ) -> StatementPage:
        data = await session.request("GET", url, headers=headers, params=params)
        bank_pages_fetched_counter.inc()
        return parse_statement_page(data)

    async def _with_deadline(self, coro):
        if not self.deadline_seconds:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout=self.deadline_seconds)
        except asyncio.TimeoutError as e:
            raise TransportError(f"Statement fetch exceeded deadline of {self.deadline_seconds}s") from e

    def _prepare(self, request: StatementRequest):
        if not request.agency or not request.account:
            raise CredentialsInsufficient("Agency and account are required")
        token = self._token(request)
        certificates = self.certificate_manager.resolve_certificates(request.wallet_ref)
        url = build_statement_url(request.api_base_url or self.base_url, request.agency, request.account)
        return certificates, url, build_headers(token, request.app_key)

    async def fetch_page(self, request: StatementRequest) -> StatementPage:
        """Fetch a single raw page (request.page_number)"""
        try:
            certificates, url, headers = self._prepare(request)
            date_from, date_to = format_wire_period(request.date_from, request.date_to)

            async def run() -> StatementPage:
                async with self.transport.connect(certificates) as session:
                    return await self._get_page(
                        session, url, headers, self._params(request, request.page_number, date_from, date_to)
                    )

            return await self._with_deadline(run())
        except BankIntegrationError as e:
            record_bank_failure(e)
            raise

    async def fetch_full_statement(self, request: StatementRequest) -> AggregatedStatement:
        """
        Fetch every page of a statement and normalize the items.

        Pages are requested one after another with the same certificates,
        headers and dates; only numeroPagina changes. Page 1 totals are
        authoritative. Any failing page fails the whole fetch.

        Raises:
            CertificatesNotFound, CredentialsInsufficient, TransportError,
            HttpStatusError, MalformedResponse
        """
        try:
            certificates, url, headers = self._prepare(request)
            date_from, date_to = format_wire_period(request.date_from, request.date_to)
            logger.info(
                "Fetching statement",
                extra={"wallet_id": request.wallet_ref, "date_from": date_from, "date_to": date_to},
            )

            async def run():
                async with self.transport.connect(certificates) as session:
                    first = await self._get_page(session, url, headers, self._params(request, 1, date_from, date_to))
                    raw_items = list(first.items)
                    for page_number in range(2, first.total_pages + 1):
                        logger.debug("Fetching page %s of %s", page_number, first.total_pages)
                        page = await self._get_page(
                            session, url, headers, self._params(request, page_number, date_from, date_to)
                        )
                        raw_items.extend(page.items)
                return first, raw_items

            first, raw_items = await self._with_deadline(run())
        except BankIntegrationError as e:
            record_bank_failure(e)
            raise

        items = normalize_items(raw_items, self.rules)
        if len(items) != first.total_record_count:
            logger.warning(
                "Statement item count differs from reported total",
                extra={"items": len(items), "total_record_count": first.total_record_count},
            )

        return AggregatedStatement(
            total_pages=first.total_pages,
            total_record_count=first.total_record_count,
            items=items,
            balance=extract_balance(items, self.rules),
        )

    async def fetch_balance(self, request: StatementRequest) -> AccountBalance:
        """Balance from a single-record first page, without a date filter"""
        try:
            certificates, url, headers = self._prepare(request)

            async def run() -> StatementPage:
                async with self.transport.connect(certificates) as session:
                    return await self._get_page(
                        session, url, headers, {"numeroPagina": "1", "quantidadeRegistros": "1"}
                    )

            page = await self._with_deadline(run())
        except BankIntegrationError as e:
            record_bank_failure(e)
            raise

        return extract_balance(normalize_items(page.items, self.rules), self.rules)
