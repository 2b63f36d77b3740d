"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class Direction(str, Enum):
    """Movement direction of a statement line item"""

    DEBIT = "D"
    CREDIT = "C"


@dataclass(frozen=True)
class BankCredential:
    """Credentials for one bank connection, read from wallet metadata"""

    application_key: str
    basic_auth_token: str
    client_id: str = ""
    client_secret: str = ""
    api_base_url: str = ""
    agency: str = ""
    account: str = ""
    certificate_bundle_ref: str = ""


@dataclass(frozen=True)
class CertificateSet:
    """Filesystem paths of the mTLS materials for one connection"""

    ca_cert_path: str
    client_cert_path: str
    private_key_path: str

    def paths(self) -> List[str]:
        return [self.ca_cert_path, self.client_cert_path, self.private_key_path]


@dataclass
class StatementRequest:
    """Parameters of a statement fetch.

    date_from / date_to may be wire-encoded strings ("3032024"), ISO strings
    or date objects; non-wire values are encoded when the query is built.
    """

    agency: str
    account: str
    connection_ref: str
    app_key: str
    wallet_ref: str
    date_from: Any = None
    date_to: Any = None
    page_number: int = 1
    page_size: int = 50
    api_base_url: Optional[str] = None


@dataclass
class NormalizedTransaction:
    """Line item after direction inference and description composition"""

    direction: Direction
    movement_date: Optional[date]
    counterparty_bank: str
    operation_description: str
    amount: Decimal
    category: str = "OTHER"
    raw_metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StatementPage:
    """One page of the bank's paginated statement (raw items)"""

    total_pages: int
    total_record_count: int
    items: List[Dict[str, Any]]


@dataclass
class AccountBalance:
    """Balance derived from marker line items; found=False means no marker existed.

    amount is the marker line's valorLancamento as sent by the bank; direction
    carries the line's sign indicator (DEBIT for an overdrawn account).
    """

    amount: Decimal
    found: bool
    source_description: str = ""
    direction: Optional[Direction] = None


@dataclass
class AggregatedStatement:
    """All pages of a statement, normalized once after collection"""

    total_pages: int
    total_record_count: int
    items: List[NormalizedTransaction]
    balance: AccountBalance
