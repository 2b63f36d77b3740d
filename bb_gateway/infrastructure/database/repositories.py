"""Data access layer for wallet metadata"""

import logging
from typing import Any, Dict, Optional, Protocol
from sqlalchemy.orm import Session
from bb_gateway.infrastructure.database.models import BANK_INTEGRATION, Wallet

logger = logging.getLogger(__name__)


class WalletMetadataStore(Protocol):
    """Narrow read interface the integration needs from the wallet store"""

    def get_metadata(self, wallet_id: str) -> Optional[Dict[str, Any]]: ...


class WalletRepository:
    """Repository for wallets"""

    def __init__(self, db: Session):
        self.db = db

    def get_wallet(self, wallet_id: str) -> Optional[Wallet]:
        """Fetch wallet by id"""
        return self.db.query(Wallet).filter(Wallet.id == wallet_id).first()

    def get_metadata(self, wallet_id: str) -> Optional[Dict[str, Any]]:
        """
        Bank integration metadata of a wallet.

        None when the wallet is missing, has no metadata, or is not a
        BANK_INTEGRATION wallet (manual wallets never reach the bank).
        """
        if not wallet_id:
            return None
        wallet = self.get_wallet(wallet_id)
        if wallet is None or not wallet.wallet_metadata:
            return None
        if wallet.type != BANK_INTEGRATION:
            logger.warning("Wallet has no bank integration", extra={"wallet_id": wallet_id, "type": wallet.type})
            return None
        return dict(wallet.wallet_metadata)
