"""Keyword tables driving transaction classification.

The bank feed is Portuguese and inconsistent about which direction signal it
fills in, so direction and category inference fall back to keyword matching.
Tables live here as data and can be replaced from a JSON file:

    {
      "debit_keywords": ["debito", "pagamento", ...],
      "credit_keywords": ["credito", "deposito", ...],
      "balance_markers": ["Saldo Atual", ...],
      "balance_keyword": "saldo",
      "categories": {"FOOD": ["restaurante", ...], ...}
    }

Keys left out of the file keep their defaults.
"""

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Tuple

logger = logging.getLogger(__name__)

DEFAULT_DEBIT_KEYWORDS: Tuple[str, ...] = (
    "debito",
    "pagamento",
    "saque",
    "compra",
    "envio",
    "enviado",
    "transferencia enviada",
)

DEFAULT_CREDIT_KEYWORDS: Tuple[str, ...] = (
    "credito",
    "deposito",
    "recebimento",
    "recebido",
    "transferencia recebida",
    "salario",
)

# Exact descriptions checked in this order before the substring fallback
DEFAULT_BALANCE_MARKERS: Tuple[str, ...] = (
    "Saldo Atual",
    "Saldo Disponivel",
    "S A L D O",
    "SALDO ANTERIOR",
)

# Order matters: first category with a matching keyword wins
DEFAULT_CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "HOUSING": ("aluguel", "imovel", "condominio", "casa"),
    "TRANSPORTATION": ("uber", "99 taxi", "taxi", "transporte", "combustivel", "gasolina"),
    "FOOD": ("restaurante", "refeicao", "supermercado", "mercado", "ifood", "comida"),
    "ENTERTAINMENT": ("cinema", "show", "teatro", "ingresso", "netflix", "spotify"),
    "HEALTH": ("medico", "hospital", "farmacia", "consulta", "exame", "saude"),
    "UTILITY": ("luz", "agua", "gas", "internet", "telefone", "celular"),
    "SALARY": ("salario", "pagamento", "remuneracao", "pro labore", "rescisao"),
    "EDUCATION": ("escola", "curso", "faculdade", "universidade", "livro", "material"),
}


@dataclass(frozen=True)
class ClassificationRules:
    """Keyword configuration for direction, balance and category inference"""

    debit_keywords: Tuple[str, ...] = DEFAULT_DEBIT_KEYWORDS
    credit_keywords: Tuple[str, ...] = DEFAULT_CREDIT_KEYWORDS
    balance_markers: Tuple[str, ...] = DEFAULT_BALANCE_MARKERS
    balance_keyword: str = "saldo"
    categories: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_CATEGORIES))

    @classmethod
    def from_dict(cls, data: dict) -> "ClassificationRules":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown classification rule keys: {sorted(unknown)}")

        kwargs = {}
        for key in ("debit_keywords", "credit_keywords", "balance_markers"):
            if key in data:
                kwargs[key] = tuple(data[key])
        if "balance_keyword" in data:
            kwargs["balance_keyword"] = str(data["balance_keyword"])
        if "categories" in data:
            kwargs["categories"] = {name: tuple(words) for name, words in data["categories"].items()}
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: str | Path) -> "ClassificationRules":
        """Load rules from a JSON file"""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        logger.info("Loaded classification rules", extra={"path": str(path)})
        return cls.from_dict(data)


DEFAULT_RULES = ClassificationRules()


def load_rules(path: str | None) -> ClassificationRules:
    """Rules from `path` when configured, defaults otherwise"""
    if not path:
        return DEFAULT_RULES
    return ClassificationRules.from_file(path)
