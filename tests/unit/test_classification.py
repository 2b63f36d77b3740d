"""Unit tests for line item classification"""

import pytest
from datetime import date
from decimal import Decimal
from bb_gateway.domain.classification import (
    categorize,
    compose_description,
    format_tax_id,
    infer_direction,
    normalize_items,
    normalize_line_item,
    parse_amount,
)
from bb_gateway.domain.models import Direction
from bb_gateway.domain.rules import ClassificationRules


def test_explicit_sign_wins_over_keywords():
    item = {"indicadorSinalLancamento": "C", "textoDescricaoHistorico": "Pagamento de boleto"}
    assert infer_direction(item) == Direction.CREDIT


@pytest.mark.parametrize("code,expected", [("1", Direction.DEBIT), ("2", Direction.CREDIT), ("d", Direction.DEBIT)])
def test_type_indicator_used_when_sign_missing(code, expected):
    item = {"indicadorTipoLancamento": code, "textoDescricaoHistorico": "Depósito"}
    assert infer_direction(item) == expected


def test_debit_keyword_checked_before_credit_keyword():
    # "Pagamento" (debit) and "recebido" (credit) both present
    item = {"textoDescricaoHistorico": "Pagamento recebido", "valorLancamento": 10}
    assert infer_direction(item) == Direction.DEBIT


def test_keyword_match_ignores_accents_and_case():
    assert infer_direction({"textoDescricaoHistorico": "DEPÓSITO EM DINHEIRO"}) == Direction.CREDIT
    assert infer_direction({"textoDescricaoHistorico": "Saque ATM"}) == Direction.DEBIT


def test_keyword_found_in_complement():
    item = {"textoDescricaoHistorico": "Pix", "textoInformacaoComplementar": "Enviado para Fulano"}
    assert infer_direction(item) == Direction.DEBIT


def test_negative_amount_is_debit():
    assert infer_direction({"textoDescricaoHistorico": "Tarifa", "valorLancamento": "-12.50"}) == Direction.DEBIT


def test_default_is_credit():
    assert infer_direction({"textoDescricaoHistorico": "Tarifa", "valorLancamento": 12.5}) == Direction.CREDIT


def test_custom_rules_change_keywords():
    rules = ClassificationRules(debit_keywords=("tarifa",), credit_keywords=())
    assert infer_direction({"textoDescricaoHistorico": "Tarifa Pacote"}, rules) == Direction.DEBIT


def test_format_tax_id_cpf_and_cnpj():
    assert format_tax_id("12345678901") == "123.456.789-01"
    assert format_tax_id(53389312000103) == "53.389.312/0001-03"


def test_format_tax_id_other_lengths_unchanged():
    assert format_tax_id("12345") == "12345"


def test_format_tax_id_zero_means_no_counterparty():
    assert format_tax_id(0) == ""
    assert format_tax_id("") == ""
    assert format_tax_id(None) == ""


def test_format_tax_id_pads_by_person_type():
    # leading zeros lost in the numeric payload
    assert format_tax_id(1234567890, "F") == "012.345.678-90"
    assert format_tax_id(2345678000199, "J") == "02.345.678/0001-99"


def test_compose_description_skips_empty_parts():
    assert compose_description("Pix - Enviado", "", "53.389.312/0001-03") == "Pix - Enviado - 53.389.312/0001-03"
    assert compose_description(None, "  ", None) == ""


def test_parse_amount():
    assert parse_amount("10550.00") == Decimal("10550.00")
    assert parse_amount(52.39) == Decimal("52.39")
    assert parse_amount(None) == Decimal("0")
    assert parse_amount("abc") == Decimal("0")


def test_categorize():
    assert categorize("Compra Supermercado Extra") == "FOOD"
    assert categorize("Uber *Trip") == "TRANSPORTATION"
    assert categorize("Tarifa Pacote de Serviços") == "OTHER"
    assert categorize("") == "OTHER"


def test_normalize_line_item_pix_sent():
    item = {
        "indicadorTipoLancamento": "1",
        "dataLancamento": 5032025,
        "dataMovimento": 0,
        "textoDescricaoHistorico": "Pix - Enviado",
        "valorLancamento": 10550.00,
        "indicadorSinalLancamento": "D",
        "textoInformacaoComplementar": "01/03 11:28 PERSONAL PRIME",
        "numeroCpfCnpjContrapartida": 53389312000103,
        "indicadorTipoPessoaContrapartida": "J",
    }

    txn = normalize_line_item(item)

    assert txn.direction == Direction.DEBIT
    assert txn.movement_date == date(2025, 3, 5)
    assert txn.counterparty_bank == "BANCO DO BRASIL"
    assert txn.operation_description == "Pix - Enviado - 01/03 11:28 PERSONAL PRIME - 53.389.312/0001-03"
    assert txn.amount == Decimal("10550.0")
    assert txn.raw_metadata == item


def test_normalize_line_item_amount_is_absolute_and_prefers_remittance_value():
    txn = normalize_line_item(
        {"textoDescricaoHistorico": "Compra", "valorLancamento": "-5.00", "valorLancamentoRemessa": "-7.25"}
    )
    assert txn.amount == Decimal("7.25")
    assert txn.direction == Direction.DEBIT


def test_normalize_line_item_movement_date_preferred_and_bank_name_kept():
    txn = normalize_line_item(
        {"dataMovimento": "4032025", "dataLancamento": "5032025", "nomeBanco": "ITAU", "textoDescricaoHistorico": "X"}
    )
    assert txn.movement_date == date(2025, 3, 4)
    assert txn.counterparty_bank == "ITAU"


def test_normalize_line_item_without_dates():
    assert normalize_line_item({"textoDescricaoHistorico": "X"}).movement_date is None


def test_normalize_items_keeps_order():
    items = [{"textoDescricaoHistorico": f"Item {i}", "valorLancamento": i} for i in range(3)]
    assert [t.operation_description for t in normalize_items(items)] == ["Item 0", "Item 1", "Item 2"]
