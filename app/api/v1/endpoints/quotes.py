"""
Read-only quote catalog endpoints. Every route requires a valid API key.
"""
import logging
import math
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.auth import AuthContext, validate_api_key
from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.models.quote import Quote
from app.schemas.quote import QuoteListResponse, QuoteResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/random", response_model=QuoteResponse)
async def random_quote(
    auth: AuthContext = Depends(validate_api_key),
    db: Session = Depends(get_db),
):
    """Get a random published quote."""
    quote = (
        db.query(Quote)
        .filter(Quote.is_published.is_(True))
        .order_by(func.random())
        .first()
    )
    if quote is None:
        raise NotFoundError("No quotes found")
    logger.debug(f"Random quote {quote.id} served to key {auth.api_key_id}")
    return QuoteResponse.model_validate(quote)


@router.get("", response_model=QuoteListResponse)
async def list_quotes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    auth: AuthContext = Depends(validate_api_key),
    db: Session = Depends(get_db),
):
    """List published quotes, newest first."""
    query = db.query(Quote).filter(Quote.is_published.is_(True))
    total = query.count()
    quotes = (
        query.order_by(Quote.created_at.desc(), Quote.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return QuoteListResponse(
        items=[QuoteResponse.model_validate(q) for q in quotes],
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit),
    )


@router.get("/{quote_id}", response_model=QuoteResponse)
async def get_quote(
    quote_id: int,
    auth: AuthContext = Depends(validate_api_key),
    db: Session = Depends(get_db),
):
    """Get a published quote by ID."""
    quote = (
        db.query(Quote)
        .filter(Quote.id == quote_id, Quote.is_published.is_(True))
        .first()
    )
    if quote is None:
        raise NotFoundError("Quote not found")
    return QuoteResponse.model_validate(quote)
