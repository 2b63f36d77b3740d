"""Entry points used by API routes: statement and balance for a linked wallet"""

import time
from dataclasses import dataclass
from typing import Any, Optional

from bb_gateway.config import settings
from bb_gateway.domain.models import AccountBalance, AggregatedStatement, StatementPage, StatementRequest
from bb_gateway.domain.rules import ClassificationRules, load_rules
from bb_gateway.infrastructure.clients.bank import BBStatementClient
from bb_gateway.infrastructure.clients.transport import MTLSTransport
from bb_gateway.infrastructure.database.repositories import WalletMetadataStore
from bb_gateway.infrastructure.observability.logging import log_statement_fetch
from bb_gateway.infrastructure.observability.metrics import record_statement
from bb_gateway.infrastructure.security.certificates import CertificateManager
from bb_gateway.infrastructure.security.credentials import CredentialResolver

# quantidadeRegistros limits accepted by the extratos API
MIN_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def clamp_page_size(value: int | None) -> int:
    """Page size within the bank's limits; None falls back to the configured default"""
    if value is None:
        value = settings.statement_page_size
    return min(max(value, MIN_PAGE_SIZE), MAX_PAGE_SIZE)


@dataclass
class StatementOptions:
    """Caller options for a statement fetch"""

    wallet_id: str
    date_from: Any = None
    date_to: Any = None
    page_number: int = 1
    page_size: int | None = None
    api_base_url: Optional[str] = None


class BBIntegrationService:
    """Wires credentials, certificates and the statement client for one wallet store"""

    def __init__(
        self,
        wallet_store: WalletMetadataStore,
        certs_root: str | None = None,
        base_url: str | None = None,
        transport: Optional[MTLSTransport] = None,
        rules: Optional[ClassificationRules] = None,
    ):
        self.credentials = CredentialResolver(wallet_store)
        self.certificates = CertificateManager(certs_root or settings.certs_root, wallet_store)
        self.client = BBStatementClient(
            certificate_manager=self.certificates,
            credential_resolver=self.credentials,
            transport=transport,
            base_url=base_url,
            rules=rules or load_rules(settings.classification_rules_path),
        )

    def _request(self, agency: str, account: str, connection_ref: str, app_key: str, options: StatementOptions) -> StatementRequest:
        return StatementRequest(
            agency=agency,
            account=account,
            connection_ref=connection_ref,
            app_key=app_key,
            wallet_ref=options.wallet_id,
            date_from=options.date_from,
            date_to=options.date_to,
            page_number=options.page_number,
            page_size=clamp_page_size(options.page_size),
            api_base_url=options.api_base_url,
        )

    async def fetch_statement(
        self, agency: str, account: str, connection_ref: str, app_key: str, options: StatementOptions
    ) -> AggregatedStatement:
        """All pages of the statement for the requested period"""
        start_time = time.time()
        statement = await self.client.fetch_full_statement(
            self._request(agency, account, connection_ref, app_key, options)
        )
        record_statement(statement.items, statement.balance.found)
        log_statement_fetch(
            wallet_id=options.wallet_id,
            pages=statement.total_pages,
            item_count=len(statement.items),
            total_record_count=statement.total_record_count,
            balance_found=statement.balance.found,
            duration_ms=(time.time() - start_time) * 1000,
        )
        return statement

    async def fetch_statement_page(
        self, agency: str, account: str, connection_ref: str, app_key: str, options: StatementOptions
    ) -> StatementPage:
        """A single raw page (options.page_number)"""
        return await self.client.fetch_page(self._request(agency, account, connection_ref, app_key, options))

    async def fetch_balance(
        self, agency: str, account: str, connection_ref: str, app_key: str, wallet_ref: str
    ) -> AccountBalance:
        return await self.client.fetch_balance(
            self._request(agency, account, connection_ref, app_key, StatementOptions(wallet_id=wallet_ref))
        )

    async def fetch_wallet_statement(self, wallet_id: str, date_from: Any = None, date_to: Any = None) -> AggregatedStatement:
        """
        Statement for a wallet using only its stored credentials.

        Raises:
            CredentialsInsufficient: wallet lacks applicationKey/clientBasic or agency/account
        """
        credential = self.credentials.require(wallet_id)
        return await self.fetch_statement(
            credential.agency,
            credential.account,
            credential.basic_auth_token,
            credential.application_key,
            StatementOptions(
                wallet_id=wallet_id,
                date_from=date_from,
                date_to=date_to,
                api_base_url=credential.api_base_url or None,
            ),
        )

    async def fetch_wallet_balance(self, wallet_id: str) -> AccountBalance:
        credential = self.credentials.require(wallet_id)
        return await self.client.fetch_balance(
            self._request(
                credential.agency,
                credential.account,
                credential.basic_auth_token,
                credential.application_key,
                StatementOptions(wallet_id=wallet_id, api_base_url=credential.api_base_url or None),
            )
        )
