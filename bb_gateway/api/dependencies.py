"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from bb_gateway.infrastructure.database.repositories import WalletRepository
from bb_gateway.infrastructure.database.session import get_db
from bb_gateway.services.integration import BBIntegrationService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_integration_service(db: Session = Depends(get_db)) -> BBIntegrationService:
    """Provide Banco do Brasil integration service bound to the request's session"""
    return BBIntegrationService(WalletRepository(db))
