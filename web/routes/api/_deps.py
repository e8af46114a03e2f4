"""Shared dependencies for API route modules."""
import logging
import time

from slowapi import Limiter
from slowapi.util import get_remote_address

from storepulse.analytics_service import StoreAnalyticsService, today_in_store_timezone
from storepulse.config import config
from storepulse.duckdb_store import get_store
from storepulse.validators import (
    validate_date_range,
    validate_store_id,
    validate_store_name,
    validate_comparison_kind,
    validate_benchmark_period,
    validate_success_axis,
    validate_thresholds,
    validate_reference_period,
)
from storepulse.exceptions import ValidationError
from web.config import RATE_LIMIT, WRITE_RATE_LIMIT

# Shared limiter instance
limiter = Limiter(key_func=get_remote_address, enabled=config.web.rate_limit_enabled)

# Shared logger factory
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

# Track startup time for uptime calculation
START_TIME = time.time()


async def get_service() -> StoreAnalyticsService:
    """Analytics service bound to the shared metrics store."""
    return StoreAnalyticsService(await get_store())
