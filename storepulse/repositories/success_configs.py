"""DuckDBStore success threshold configuration."""
from __future__ import annotations

from typing import List

from storepulse.models import SuccessAxis, ThresholdConfig
from storepulse.observability import get_logger

logger = get_logger(__name__)


class SuccessConfigMixin:

    async def fetch_active_threshold_configs(self) -> List[ThresholdConfig]:
        rows = await self._fetch_all("""
            SELECT type, low_threshold, medium_threshold, high_threshold
            FROM success_configs
            WHERE is_active
            ORDER BY type
        """)

        configs = []
        for axis, low, medium, high in rows:
            try:
                success_axis = SuccessAxis(axis)
            except ValueError:
                logger.warning(f"Ignoring success config with unknown type {axis!r}")
                continue
            configs.append(ThresholdConfig(
                axis=success_axis,
                low=float(low),
                medium=float(medium),
                high=float(high),
            ))
        return configs

    async def upsert_threshold_config(self, cfg: ThresholdConfig, is_active: bool = True) -> ThresholdConfig:
        """Insert or replace the thresholds for one axis."""
        await self._write_rows("upsert_threshold_config", """
            INSERT OR REPLACE INTO success_configs
            (type, low_threshold, medium_threshold, high_threshold, is_active, updated_at)
            VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
        """, [[cfg.axis.value, cfg.low, cfg.medium, cfg.high, is_active]])
        return cfg
