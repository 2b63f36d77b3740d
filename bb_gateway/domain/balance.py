"""Best-effort account balance derived from statement marker lines"""

import logging
from decimal import Decimal
from typing import List, Optional

from bb_gateway.domain.classification import parse_amount
from bb_gateway.domain.models import AccountBalance, NormalizedTransaction
from bb_gateway.domain.rules import ClassificationRules, DEFAULT_RULES

logger = logging.getLogger(__name__)


def _primary_description(txn: NormalizedTransaction) -> str:
    return str(txn.raw_metadata.get("textoDescricaoHistorico") or txn.operation_description or "").strip()


def _to_balance(txn: NormalizedTransaction, marker: str) -> AccountBalance:
    raw = txn.raw_metadata.get("valorLancamento")
    amount = parse_amount(raw) if raw is not None else txn.amount
    return AccountBalance(amount=amount, found=True, source_description=marker, direction=txn.direction)


def extract_balance(
    items: List[NormalizedTransaction], rules: ClassificationRules = DEFAULT_RULES
) -> AccountBalance:
    """
    Find the balance among statement items.

    Exact marker descriptions are tried in priority order, then any item whose
    description contains the balance keyword (case-insensitive). Nothing found
    gives AccountBalance(found=False, amount=0) so callers can tell "no balance"
    from a zero balance.
    """
    if not items:
        logger.warning("No statement items to extract balance from")
        return AccountBalance(amount=Decimal("0"), found=False)

    descriptions = [_primary_description(txn) for txn in items]

    for marker in rules.balance_markers:
        for txn, description in zip(items, descriptions):
            if description == marker:
                logger.info("Balance found", extra={"marker": marker})
                return _to_balance(txn, marker)

    keyword = rules.balance_keyword.lower()
    match: Optional[NormalizedTransaction] = next(
        (txn for txn, description in zip(items, descriptions) if keyword in description.lower()),
        None,
    )
    if match is not None:
        description = _primary_description(match)
        logger.info("Balance found by keyword", extra={"marker": description})
        return _to_balance(match, description)

    logger.warning(
        "No balance marker found",
        extra={"descriptions": sorted(set(d for d in descriptions if d))},
    )
    return AccountBalance(amount=Decimal("0"), found=False)
