"""
Query mixins for DuckDBStore.

Each mixin relies on the store's connection(), _fetch_one(), _fetch_all()
and _write_rows() helpers.
"""
from storepulse.repositories.metrics import MetricsMixin
from storepulse.repositories.stores import StoresMixin
from storepulse.repositories.success_configs import SuccessConfigMixin

__all__ = [
    "MetricsMixin",
    "StoresMixin",
    "SuccessConfigMixin",
]
