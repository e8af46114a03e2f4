"""Success classification and threshold configuration endpoints."""
from fastapi import APIRouter, Request, HTTPException

from storepulse.models import ThresholdConfig
from web.schemas import (
    SuccessBatchResponse,
    SuccessStatusResponse,
    ThresholdConfigResponse,
    ThresholdConfigsResponse,
    ThresholdConfigUpdate,
)
from ._deps import (
    limiter,
    get_store,
    get_service,
    get_logger,
    today_in_store_timezone,
    validate_store_id,
    validate_success_axis,
    validate_thresholds,
    ValidationError,
    RATE_LIMIT,
    WRITE_RATE_LIMIT,
)

router = APIRouter()
logger = get_logger(__name__)


@router.get("/success", response_model=SuccessBatchResponse, response_model_exclude_none=True)
@limiter.limit("30/minute")
async def get_all_success_statuses(request: Request):
    """Get success status for every store with a reference period."""
    service = await get_service()
    report = await service.get_all_success_statuses(today_in_store_timezone())
    return report.to_dict()


@router.get("/success/config", response_model=ThresholdConfigsResponse)
@limiter.limit(RATE_LIMIT)
async def get_success_config(request: Request):
    """Get the active success thresholds."""
    store = await get_store()
    configs = await store.fetch_active_threshold_configs()
    return {"configs": [c.to_dict() for c in configs]}


@router.put("/success/config/{axis}", response_model=ThresholdConfigResponse)
@limiter.limit(WRITE_RATE_LIMIT)
async def update_success_config(request: Request, axis: str, body: ThresholdConfigUpdate):
    """Create or replace the thresholds for one axis."""
    try:
        success_axis = validate_success_axis(axis)
        low, medium, high = validate_thresholds(
            body.lowThreshold, body.mediumThreshold, body.highThreshold
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    store = await get_store()
    cfg = await store.upsert_threshold_config(
        ThresholdConfig(axis=success_axis, low=low, medium=medium, high=high),
        is_active=body.isActive,
    )
    logger.info(f"Success thresholds for {success_axis.value} updated: {low} / {medium} / {high}")
    return cfg.to_dict()


@router.get("/success/{store_id}", response_model=SuccessStatusResponse, response_model_exclude_none=True)
@limiter.limit(RATE_LIMIT)
async def get_success_status(request: Request, store_id: str):
    """Get success status for one store's reference period."""
    try:
        store_id = validate_store_id(store_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    service = await get_service()
    result = await service.get_success_status(store_id, today_in_store_timezone())
    return result.to_dict()
