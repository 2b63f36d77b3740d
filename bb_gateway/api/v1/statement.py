"""GET /v1/wallets/{wallet_id}/statement|balance - Banco do Brasil statement endpoints"""

import logging
from datetime import date
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from bb_gateway.api.dependencies import get_integration_service, get_request_id
from bb_gateway.api.v1.schemas import (
    BalanceResponse,
    PaginationSchema,
    StatementPageResponse,
    StatementResponse,
    TransactionSchema,
)
from bb_gateway.domain.classification import normalize_items
from bb_gateway.domain.exceptions import (
    CertificatesNotFound,
    CredentialsInsufficient,
    DomainException,
    HttpStatusError,
    InvalidDateRangeError,
    MalformedResponse,
    TransportError,
)
from bb_gateway.services.integration import BBIntegrationService, StatementOptions, clamp_page_size
from bb_gateway.utils.date_utils import normalize_period, validate_period

router = APIRouter()


def _raise_http(e: DomainException, request_id: str) -> NoReturn:
    """Translate integration errors into HTTP responses"""
    if isinstance(e, (CredentialsInsufficient, InvalidDateRangeError)):
        logging.warning(f"Invalid statement request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, CertificatesNotFound):
        logging.error(f"Certificates missing: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=412, detail="Bank certificates not configured for this wallet")
    if isinstance(e, HttpStatusError):
        logging.error(f"Bank API error: {e}", extra={"request_id": request_id, "status_code": e.status_code})
        raise HTTPException(status_code=502, detail=f"Bank API returned {e.status_code}")
    if isinstance(e, (TransportError, MalformedResponse)):
        logging.error(f"Bank API unavailable: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Bank service unavailable")
    logging.error(f"Unexpected integration error: {e}", extra={"request_id": request_id})
    raise HTTPException(status_code=500, detail="Internal server error")


def _period(start_date: date, end_date: date) -> tuple[date, date]:
    start, end = normalize_period(start_date, end_date)
    validate_period(start, end)
    return start, end


@router.get("/wallets/{wallet_id}/statement", response_model=StatementResponse)
async def get_statement(
    wallet_id: str,
    request: Request,
    start_date: date = Query(..., description="First day (YYYY-MM-DD)"),
    end_date: date = Query(..., description="Last day (YYYY-MM-DD)"),
    service: BBIntegrationService = Depends(get_integration_service),
):
    """
    Full statement for a linked Banco do Brasil wallet.

    Flow:
    1. Clamp and validate the period (max 31 days, max 5 years back)
    2. Resolve stored credentials and mTLS certificates
    3. Fetch every page sequentially and normalize the items
    4. Derive the balance from marker lines
    """
    request_id = get_request_id(request)
    try:
        start, end = _period(start_date, end_date)
        statement = await service.fetch_wallet_statement(wallet_id, start, end)
    except DomainException as e:
        _raise_http(e, request_id)

    return StatementResponse(
        wallet_id=wallet_id,
        total_pages=statement.total_pages,
        total_record_count=statement.total_record_count,
        transactions=[TransactionSchema.from_domain(t) for t in statement.items],
        balance=BalanceResponse.from_domain(wallet_id, statement.balance),
    )


@router.get("/wallets/{wallet_id}/statement/page", response_model=StatementPageResponse)
async def get_statement_page(
    wallet_id: str,
    request: Request,
    start_date: date = Query(...),
    end_date: date = Query(...),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, description="Records per page, clamped to 50..200"),
    service: BBIntegrationService = Depends(get_integration_service),
):
    """Single statement page with pagination links"""
    request_id = get_request_id(request)
    per_page = clamp_page_size(per_page)
    try:
        start, end = _period(start_date, end_date)
        credential = service.credentials.require(wallet_id)
        statement_page = await service.fetch_statement_page(
            credential.agency,
            credential.account,
            credential.basic_auth_token,
            credential.application_key,
            StatementOptions(
                wallet_id=wallet_id,
                date_from=start,
                date_to=end,
                page_number=page,
                page_size=per_page,
                api_base_url=credential.api_base_url or None,
            ),
        )
    except DomainException as e:
        _raise_http(e, request_id)

    return StatementPageResponse(
        wallet_id=wallet_id,
        transactions=[
            TransactionSchema.from_domain(t) for t in normalize_items(statement_page.items, service.client.rules)
        ],
        pagination=PaginationSchema(
            current_page=page,
            items_per_page=per_page,
            total_pages=statement_page.total_pages,
            total_items=statement_page.total_record_count,
            previous_page=page - 1 if page > 1 else None,
            next_page=page + 1 if page < statement_page.total_pages else None,
        ),
    )


@router.get("/wallets/{wallet_id}/balance", response_model=BalanceResponse)
async def get_balance(
    wallet_id: str,
    request: Request,
    service: BBIntegrationService = Depends(get_integration_service),
):
    """Best-effort balance; found=false when the bank sent no balance line"""
    request_id = get_request_id(request)
    try:
        balance = await service.fetch_wallet_balance(wallet_id)
    except DomainException as e:
        _raise_http(e, request_id)

    return BalanceResponse.from_domain(wallet_id, balance)
