"""Resolve bank credentials from wallet metadata"""

import logging
from typing import Optional

from bb_gateway.domain.exceptions import CredentialsInsufficient
from bb_gateway.domain.models import BankCredential
from bb_gateway.infrastructure.database.repositories import WalletMetadataStore

logger = logging.getLogger(__name__)

# Stored clientBasic values and OAuth access tokens are long opaque strings;
# wallet ids are short cuid/uuid values
TOKEN_MIN_LENGTH = 100


def looks_like_token(value: str | None) -> bool:
    return bool(value) and len(value) >= TOKEN_MIN_LENGTH and not any(c.isspace() for c in value)


class CredentialResolver:
    """
    Builds BankCredential from the wallet metadata blob.

    The stored `clientBasic` is sent as the bearer token; no OAuth exchange
    is performed here.
    """

    def __init__(self, wallet_store: WalletMetadataStore):
        self.wallet_store = wallet_store

    def resolve(self, wallet_ref: str) -> Optional[BankCredential]:
        """Credential for a wallet, or None when the wallet or required fields are missing"""
        metadata = self.wallet_store.get_metadata(wallet_ref) if wallet_ref else None
        if not metadata:
            logger.warning("Wallet not found or without metadata", extra={"wallet_id": wallet_ref})
            return None

        application_key = metadata.get("applicationKey")
        basic_token = metadata.get("clientBasic")
        if not application_key or not basic_token:
            logger.warning(
                "Incomplete bank credentials",
                extra={
                    "wallet_id": wallet_ref,
                    "has_application_key": bool(application_key),
                    "has_client_basic": bool(basic_token),
                },
            )
            return None

        return BankCredential(
            application_key=str(application_key),
            basic_auth_token=str(basic_token),
            client_id=str(metadata.get("clientId") or ""),
            client_secret=str(metadata.get("clientSecret") or ""),
            api_base_url=str(metadata.get("apiUrl") or ""),
            agency=str(metadata.get("agencia") or ""),
            account=str(metadata.get("conta") or ""),
            certificate_bundle_ref=wallet_ref,
        )

    def resolve_token(self, connection_ref: str, wallet_ref: str) -> Optional[str]:
        """
        Bearer token for a request.

        A connection_ref that already looks like a token is passed through
        unchanged; anything else is resolved from the wallet's stored clientBasic.
        """
        if looks_like_token(connection_ref):
            return connection_ref
        credential = self.resolve(wallet_ref)
        return credential.basic_auth_token if credential else None

    def require(self, wallet_ref: str) -> BankCredential:
        """
        Raises:
            CredentialsInsufficient: wallet missing or lacking applicationKey/clientBasic
        """
        credential = self.resolve(wallet_ref)
        if credential is None:
            raise CredentialsInsufficient(f"Bank credentials not configured for wallet {wallet_ref}")
        return credential
