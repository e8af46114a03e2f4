"""
Web API configuration.
"""
from storepulse.config import config, VERSION

# Web server settings
WEB_HOST = config.web.host
WEB_PORT = config.web.port

# Rate limits per route family
RATE_LIMIT = f"{config.web.rate_limit_per_minute}/minute"
WRITE_RATE_LIMIT = "10/minute"

REQUEST_TIMEOUT = config.web.request_timeout_seconds
SLOW_REQUEST_TIMEOUT = config.web.slow_request_timeout_seconds

__all__ = ["VERSION", "WEB_HOST", "WEB_PORT", "RATE_LIMIT", "WRITE_RATE_LIMIT", "REQUEST_TIMEOUT", "SLOW_REQUEST_TIMEOUT"]
