"""Pytest fixtures for testing"""

import base64
import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generator, Optional

import httpx
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from bb_gateway.api.dependencies import get_integration_service
from bb_gateway.api.main import create_app
from bb_gateway.domain.rules import DEFAULT_RULES
from bb_gateway.infrastructure.clients.transport import MTLSTransport
from bb_gateway.infrastructure.database.models import Base, Wallet
from bb_gateway.infrastructure.database.repositories import WalletRepository
from bb_gateway.infrastructure.database.session import get_db
from bb_gateway.services.integration import BBIntegrationService
from mock.bb_server.main import app as bb_mock_app


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

BB_TEST_BASE = "https://bb.test/extratos/v1"
WALLET_ID = "wallet_bb_1"
APP_KEY = "app-key-123"
CLIENT_BASIC = "Y2xpZW50OnNlY3JldA" * 8  # long opaque value, like a real clientBasic


class InMemoryWalletStore:
    """Wallet metadata keyed by wallet id"""

    def __init__(self, wallets: Optional[Dict[str, Dict[str, Any]]] = None):
        self.wallets = wallets or {}
        self.lookups = 0

    def get_metadata(self, wallet_id: str) -> Optional[Dict[str, Any]]:
        self.lookups += 1
        return self.wallets.get(wallet_id)


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


@pytest.fixture(scope="session")
def certificate_pems() -> Dict[str, bytes]:
    """Throwaway CA and client certificate in PEM form"""
    now = datetime.now(timezone.utc)

    ca_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    ca_cert = (
        x509.CertificateBuilder()
        .subject_name(_name("Test BB CA"))
        .issuer_name(_name("Test BB CA"))
        .public_key(ca_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(ca_key, hashes.SHA256())
    )

    client_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    client_cert = (
        x509.CertificateBuilder()
        .subject_name(_name("bb-gateway-client"))
        .issuer_name(ca_cert.subject)
        .public_key(client_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(ca_key, hashes.SHA256())
    )

    return {
        "ca": ca_cert.public_bytes(serialization.Encoding.PEM),
        "cert": client_cert.public_bytes(serialization.Encoding.PEM),
        "key": client_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
        ),
    }


@pytest.fixture
def wallet_metadata(certificate_pems: Dict[str, bytes]) -> Dict[str, Any]:
    """Metadata of a fully configured Banco do Brasil wallet"""
    return {
        "applicationKey": APP_KEY,
        "clientBasic": CLIENT_BASIC,
        "clientId": "client-id",
        "clientSecret": "client-secret",
        "agencia": "2383",
        "conta": "00012345",
        "certificates": {
            "caBase64": base64.b64encode(certificate_pems["ca"]).decode(),
            "certBase64": base64.b64encode(certificate_pems["cert"]).decode(),
            "keyBase64": base64.b64encode(certificate_pems["key"]).decode(),
        },
    }


@pytest.fixture
def wallet_store(wallet_metadata: Dict[str, Any]) -> InMemoryWalletStore:
    return InMemoryWalletStore({WALLET_ID: wallet_metadata})


@pytest.fixture
def certs_root(tmp_path):
    return tmp_path / "certs"


@pytest.fixture
def bb_transport() -> MTLSTransport:
    """mTLS transport whose socket layer is the mock Banco do Brasil app"""
    return MTLSTransport(timeout=5.0, http_transport=httpx.ASGITransport(app=bb_mock_app))


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def wallet(db: Session, wallet_metadata: Dict[str, Any]) -> Wallet:
    wallet = Wallet(id=WALLET_ID, user_id="user_1", name="Conta BB", wallet_metadata=wallet_metadata)
    db.add(wallet)
    db.commit()
    return wallet


@pytest.fixture
def client(db: Session, certs_root, bb_transport: MTLSTransport) -> TestClient:
    """Create FastAPI test client with test database and the mock bank behind mTLS"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_integration_service():
        return BBIntegrationService(
            WalletRepository(db),
            certs_root=str(certs_root),
            base_url=BB_TEST_BASE,
            transport=bb_transport,
            rules=DEFAULT_RULES,
        )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_integration_service] = override_get_integration_service
    return TestClient(app)
