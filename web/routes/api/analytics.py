"""Store analytics and session series endpoints."""
from typing import Optional

from fastapi import APIRouter, Query, Request, HTTPException

from web.schemas import SessionsResponse, StoreAnalyticsResponse
from ._deps import (
    limiter,
    get_service,
    get_logger,
    today_in_store_timezone,
    validate_date_range,
    validate_store_id,
    validate_comparison_kind,
    validate_benchmark_period,
    ValidationError,
    RATE_LIMIT,
)

router = APIRouter()
logger = get_logger(__name__)


@router.get("/analytics/{store_id}", response_model=StoreAnalyticsResponse)
@limiter.limit(RATE_LIMIT)
async def get_store_analytics(
    request: Request,
    store_id: str,
    start_date: Optional[str] = Query(None, description="Start date (YYYY-MM-DD), default 30 days ago"),
    end_date: Optional[str] = Query(None, description="End date (YYYY-MM-DD), default today"),
    start_date_camel: Optional[str] = Query(None, alias="startDate", include_in_schema=False),
    end_date_camel: Optional[str] = Query(None, alias="endDate", include_in_schema=False),
    comparison: Optional[str] = Query(None, description="previous_period, last_month, last_year or none"),
    benchmark: Optional[str] = Query("ref", description="ref, ref_1, ref_2 or ref_3"),
):
    """Get totals, comparison, benchmark, sales over time and top products."""
    start_date, end_date = start_date or start_date_camel, end_date or end_date_camel
    try:
        store_id = validate_store_id(store_id)
        date_range = validate_date_range(start_date, end_date, today=today_in_store_timezone())
        comparison_kind = validate_comparison_kind(comparison)
        benchmark_period = validate_benchmark_period(benchmark)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    service = await get_service()
    result = await service.get_store_analytics(
        store_id, date_range, comparison=comparison_kind, benchmark=benchmark_period
    )
    return result.to_dict()


@router.get("/analytics/{store_id}/sessions", response_model=SessionsResponse)
@limiter.limit(RATE_LIMIT)
async def get_session_metrics(
    request: Request,
    store_id: str,
    start_date: Optional[str] = Query(None, description="Start date (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, description="End date (YYYY-MM-DD)"),
    start_date_camel: Optional[str] = Query(None, alias="startDate", include_in_schema=False),
    end_date_camel: Optional[str] = Query(None, alias="endDate", include_in_schema=False),
):
    """Get daily sessions and conversion rates. Whole history when no dates are given."""
    start_date, end_date = start_date or start_date_camel, end_date or end_date_camel
    try:
        store_id = validate_store_id(store_id)
        date_range = None
        if start_date or end_date:
            date_range = validate_date_range(start_date, end_date, today=today_in_store_timezone())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    service = await get_service()
    points = await service.get_session_metrics(store_id, date_range)
    return {"sessions": [p.to_dict() for p in points]}
