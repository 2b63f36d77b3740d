"""Integration tests for API endpoints"""

import pytest
from unittest.mock import AsyncMock, patch
from datetime import date, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient
from bb_gateway.domain.exceptions import HttpStatusError, TransportError
from bb_gateway.domain.models import AccountBalance
from bb_gateway.infrastructure.database.models import Wallet
from conftest import WALLET_ID

pytestmark = pytest.mark.integration


def _period(days: int = 10) -> dict:
    end = date.today()
    return {"start_date": (end - timedelta(days=days)).isoformat(), "end_date": end.isoformat()}


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "bb-gateway"}


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "bb_request_latency_seconds" in response.text


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_statement_endpoint(client: TestClient, wallet):
    """Test GET /v1/wallets/{id}/statement against the mock bank"""
    response = client.get(f"/v1/wallets/{WALLET_ID}/statement", params=_period())

    assert response.status_code == 200
    data = response.json()
    assert data["wallet_id"] == WALLET_ID
    assert data["total_record_count"] == 12
    assert len(data["transactions"]) == 12

    pix = data["transactions"][1]
    assert pix["direction"] == "D"
    assert pix["movement_date"] == "2025-03-05"
    assert pix["description"] == "Pix - Enviado - 01/03 11:28 PERSONAL PRIME - 53.389.312/0001-03"
    assert Decimal(str(pix["amount"])) == Decimal("10550")

    assert data["balance"]["found"] is True
    assert data["balance"]["source_description"] == "Saldo Disponivel"
    assert Decimal(str(data["balance"]["amount"])) == Decimal("4239")


def test_statement_page_endpoint(client: TestClient, wallet):
    """Test GET /v1/wallets/{id}/statement/page pagination links"""
    response = client.get(f"/v1/wallets/{WALLET_ID}/statement/page", params={**_period(), "page": 1})

    assert response.status_code == 200
    data = response.json()
    assert len(data["transactions"]) == 12
    assert data["pagination"] == {
        "current_page": 1,
        "items_per_page": 50,
        "total_pages": 1,
        "total_items": 12,
        "previous_page": None,
        "next_page": None,
    }


@pytest.mark.parametrize("per_page,expected", [(5, 50), (120, 120), (500, 200)])
def test_statement_page_size_is_clamped(client: TestClient, wallet, per_page, expected):
    response = client.get(f"/v1/wallets/{WALLET_ID}/statement/page", params={**_period(), "per_page": per_page})

    assert response.status_code == 200
    assert response.json()["pagination"]["items_per_page"] == expected


def test_statement_rejects_wallet_without_bank_integration(client: TestClient, db, wallet_metadata):
    db.add(Wallet(id="manual_1", name="Carteira manual", type="MANUAL", wallet_metadata=wallet_metadata))
    db.commit()

    response = client.get("/v1/wallets/manual_1/statement", params=_period())

    assert response.status_code == 400


def test_balance_endpoint(client: TestClient, wallet):
    """Test GET /v1/wallets/{id}/balance from a single-record page"""
    response = client.get(f"/v1/wallets/{WALLET_ID}/balance")

    assert response.status_code == 200
    data = response.json()
    # only "SALDO ANTERIOR" is on the single-record page
    assert data["found"] is True
    assert data["source_description"] == "SALDO ANTERIOR"
    assert data["direction"] == "C"


def test_statement_unknown_wallet_is_bad_request(client: TestClient):
    response = client.get("/v1/wallets/missing/statement", params=_period())
    assert response.status_code == 400


def test_statement_period_too_long(client: TestClient, wallet):
    response = client.get(f"/v1/wallets/{WALLET_ID}/statement", params=_period(days=45))
    assert response.status_code == 400
    assert "31 days" in response.json()["detail"]


def test_statement_without_certificates(client: TestClient, db, wallet):
    metadata = dict(wallet.wallet_metadata)
    del metadata["certificates"]
    wallet.wallet_metadata = metadata
    db.commit()

    response = client.get(f"/v1/wallets/{WALLET_ID}/statement", params=_period())

    assert response.status_code == 412


@patch("bb_gateway.infrastructure.clients.bank.BBStatementClient.fetch_full_statement")
def test_bank_error_status_maps_to_bad_gateway(mock_fetch: AsyncMock, client: TestClient, wallet):
    mock_fetch.side_effect = HttpStatusError(401, "Unauthorized")

    response = client.get(f"/v1/wallets/{WALLET_ID}/statement", params=_period())

    assert response.status_code == 502
    assert response.json()["detail"] == "Bank API returned 401"


@patch("bb_gateway.infrastructure.clients.bank.BBStatementClient.fetch_balance")
def test_transport_error_maps_to_unavailable(mock_fetch: AsyncMock, client: TestClient, wallet):
    mock_fetch.side_effect = TransportError("connection reset")

    response = client.get(f"/v1/wallets/{WALLET_ID}/balance")

    assert response.status_code == 503


@patch("bb_gateway.infrastructure.clients.bank.BBStatementClient.fetch_balance")
def test_balance_not_found_is_reported(mock_fetch: AsyncMock, client: TestClient, wallet):
    mock_fetch.return_value = AccountBalance(amount=Decimal("0"), found=False)

    response = client.get(f"/v1/wallets/{WALLET_ID}/balance")

    assert response.status_code == 200
    assert response.json()["found"] is False
