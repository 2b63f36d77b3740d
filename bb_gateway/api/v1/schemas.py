"""Pydantic schemas for API request/response validation"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from bb_gateway.domain.models import AccountBalance, NormalizedTransaction


class TransactionSchema(BaseModel):
    """Single normalized statement line"""

    direction: str
    movement_date: Optional[date] = None
    counterparty_bank: str
    description: str
    amount: Decimal
    category: str

    @classmethod
    def from_domain(cls, txn: NormalizedTransaction) -> "TransactionSchema":
        return cls(
            direction=txn.direction.value,
            movement_date=txn.movement_date,
            counterparty_bank=txn.counterparty_bank,
            description=txn.operation_description,
            amount=txn.amount,
            category=txn.category,
        )


class BalanceResponse(BaseModel):
    """Balance derived from statement marker lines; found=False means unknown, not zero"""

    wallet_id: str
    amount: Decimal
    found: bool
    source_description: str = ""
    direction: Optional[str] = None

    @classmethod
    def from_domain(cls, wallet_id: str, balance: AccountBalance) -> "BalanceResponse":
        return cls(
            wallet_id=wallet_id,
            amount=balance.amount,
            found=balance.found,
            source_description=balance.source_description,
            direction=balance.direction.value if balance.direction else None,
        )


class StatementResponse(BaseModel):
    """Response for GET /v1/wallets/{wallet_id}/statement"""

    wallet_id: str
    total_pages: int
    total_record_count: int
    transactions: List[TransactionSchema]
    balance: BalanceResponse


class PaginationSchema(BaseModel):
    current_page: int
    items_per_page: int
    total_pages: int
    total_items: int
    previous_page: Optional[int] = None
    next_page: Optional[int] = None


class StatementPageResponse(BaseModel):
    """Response for GET /v1/wallets/{wallet_id}/statement/page"""

    wallet_id: str
    transactions: List[TransactionSchema]
    pagination: PaginationSchema
