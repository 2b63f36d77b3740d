"""Transaction classification - turns raw statement line items into NormalizedTransaction"""

import logging
import unicodedata
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from bb_gateway.domain.models import Direction, NormalizedTransaction
from bb_gateway.domain.rules import ClassificationRules, DEFAULT_RULES
from bb_gateway.utils.date_utils import parse_wire_date

logger = logging.getLogger(__name__)

DESCRIPTION_SEPARATOR = " - "
DEFAULT_BANK_NAME = "BANCO DO BRASIL"

_SIGN_CODES = {"D": Direction.DEBIT, "C": Direction.CREDIT}
_TYPE_CODES = {"1": Direction.DEBIT, "2": Direction.CREDIT, "D": Direction.DEBIT, "C": Direction.CREDIT}


def _fold(text: str) -> str:
    """Lowercase and strip accents so "Depósito" matches "deposito" """
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower()


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_amount(value: Any) -> Decimal:
    """Bank amounts arrive as JSON numbers or strings; unparseable values become 0"""
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        logger.warning("Unparseable amount %r, using 0", value)
        return Decimal("0")


def infer_direction(item: Dict[str, Any], rules: ClassificationRules = DEFAULT_RULES) -> Direction:
    """
    Infer debit/credit for a raw line item.

    Priority (first match wins):
    1. explicit indicator: indicadorSinalLancamento D/C, or indicadorTipoLancamento 1/2/D/C
    2. debit keywords, then credit keywords, over description + operation type + complement
    3. negative amount -> debit
    4. credit
    """
    sign = _text(item.get("indicadorSinalLancamento")).upper()
    if sign in _SIGN_CODES:
        return _SIGN_CODES[sign]

    type_code = _text(item.get("indicadorTipoLancamento")).upper()
    if type_code in _TYPE_CODES:
        return _TYPE_CODES[type_code]

    haystack = _fold(
        " ".join(
            [
                _text(item.get("textoDescricaoHistorico") or item.get("descricaoLancamento")),
                _text(item.get("nomeTipoOperacao")),
                _text(item.get("complementoHistorico") or item.get("textoInformacaoComplementar")),
            ]
        )
    )
    if any(_fold(word) in haystack for word in rules.debit_keywords):
        return Direction.DEBIT
    if any(_fold(word) in haystack for word in rules.credit_keywords):
        return Direction.CREDIT

    if parse_amount(item.get("valorLancamento")) < 0:
        return Direction.DEBIT

    return Direction.CREDIT


def format_tax_id(value: Any, person_type: str | None = None) -> str:
    """
    Format a CPF (11 digits) or CNPJ (14 digits); other lengths are returned unchanged.

    Numeric payloads lose leading zeros, so when the counterparty person type
    is known ("F" individual, "J" company) the digits are padded back first.
    Zero or empty means no counterparty and yields "".
    """
    if value is None:
        return ""
    digits = str(value).strip()
    if not digits or digits.strip("0") == "":
        return ""
    if not digits.isdigit():
        return digits

    kind = (person_type or "").upper()
    if kind == "F" and len(digits) < 11:
        digits = digits.zfill(11)
    elif kind == "J" and len(digits) < 14:
        digits = digits.zfill(14)

    if len(digits) == 11:
        return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"
    if len(digits) == 14:
        return f"{digits[:2]}.{digits[2:5]}.{digits[5:8]}/{digits[8:12]}-{digits[12:]}"
    return digits


def compose_description(*parts: Optional[str]) -> str:
    """Join non-empty parts with the fixed separator, keeping their order"""
    return DESCRIPTION_SEPARATOR.join(p.strip() for p in parts if p and p.strip())


def categorize(description: str, rules: ClassificationRules = DEFAULT_RULES) -> str:
    """Map a description to a spending category by keyword"""
    if not description:
        return "OTHER"
    folded = _fold(description)
    for category, keywords in rules.categories.items():
        if any(_fold(word) in folded for word in keywords):
            return category
    return "OTHER"


def _movement_date(item: Dict[str, Any]):
    for key in ("dataMovimento", "dataLancamento"):
        value = item.get(key)
        if value not in (None, "", 0, "0"):
            return parse_wire_date(value)
    return None


def normalize_line_item(item: Dict[str, Any], rules: ClassificationRules = DEFAULT_RULES) -> NormalizedTransaction:
    """Pure conversion of one raw line item"""
    direction = infer_direction(item, rules)
    tax_id = format_tax_id(
        item.get("numeroCpfCnpjContrapartida"),
        _text(item.get("indicadorTipoPessoaContrapartida")),
    )
    description = compose_description(
        _text(item.get("textoDescricaoHistorico")),
        _text(item.get("textoInformacaoComplementar")),
        tax_id,
    )
    amount = parse_amount(item.get("valorLancamentoRemessa") or item.get("valorLancamento"))

    return NormalizedTransaction(
        direction=direction,
        movement_date=_movement_date(item),
        counterparty_bank=_text(item.get("nomeBanco")) or DEFAULT_BANK_NAME,
        operation_description=description or _text(item.get("nomeTipoOperacao")),
        amount=abs(amount),
        category=categorize(description, rules),
        raw_metadata=dict(item),
    )


def normalize_items(
    items: Iterable[Dict[str, Any]], rules: ClassificationRules = DEFAULT_RULES
) -> List[NormalizedTransaction]:
    return [normalize_line_item(item, rules) for item in items]
