"""Store records and reference period endpoints."""
import uuid

from fastapi import APIRouter, Request, HTTPException

from web.schemas import ReferencePeriodUpdate, StoreCreate, StoreResponse, StoresResponse
from ._deps import (
    limiter,
    get_logger,
    get_store,
    validate_store_id,
    validate_store_name,
    validate_reference_period,
    ValidationError,
    RATE_LIMIT,
    WRITE_RATE_LIMIT,
)

router = APIRouter()
logger = get_logger(__name__)


@router.get("/stores", response_model=StoresResponse)
@limiter.limit(RATE_LIMIT)
async def list_stores(request: Request):
    store = await get_store()
    return {"stores": await store.list_stores()}


@router.post("/stores", response_model=StoreResponse, status_code=201)
@limiter.limit(WRITE_RATE_LIMIT)
async def create_store(request: Request, body: StoreCreate):
    """
    Register a store, or rename an existing one.

    Without an id, a store already registered under the same url is
    returned unchanged instead of creating a duplicate.
    """
    try:
        name = validate_store_name(body.name)
        store_id = validate_store_id(body.id, "id") if body.id else None
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    url = body.url.strip() if body.url and body.url.strip() else None

    store = await get_store()
    if store_id is None:
        if url:
            existing = await store.find_store_by_url(url)
            if existing:
                logger.info(f"Store for {url} already registered as {existing['id']}")
                return existing
        store_id = str(uuid.uuid4())

    return await store.upsert_store(store_id, name, url)


@router.get("/stores/{store_id}", response_model=StoreResponse)
@limiter.limit(RATE_LIMIT)
async def get_store_record(request: Request, store_id: str):
    """Get one store. 404 when unknown."""
    try:
        store_id = validate_store_id(store_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    store = await get_store()
    return await store.get_store_record(store_id)


@router.delete("/stores/{store_id}", response_model=StoreResponse)
@limiter.limit(WRITE_RATE_LIMIT)
async def delete_store(request: Request, store_id: str):
    """Delete a store and all of its metrics. 404 when unknown."""
    try:
        store_id = validate_store_id(store_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    store = await get_store()
    return await store.delete_store(store_id)


@router.put("/stores/{store_id}/reference-period", response_model=StoreResponse)
@limiter.limit(WRITE_RATE_LIMIT)
async def update_reference_period(request: Request, store_id: str, body: ReferencePeriodUpdate):
    """Set or clear the store's reference period."""
    try:
        store_id = validate_store_id(store_id)
        reference_start, reference_end = validate_reference_period(
            body.referenceStart, body.referenceEnd
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    store = await get_store()
    return await store.update_reference_period(store_id, reference_start, reference_end)
