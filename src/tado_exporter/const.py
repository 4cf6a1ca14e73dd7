"""Constants for tado_exporter."""

from __future__ import annotations


# OAuth2 Configuration
DEFAULT_CLIENT_ID = "1bb50063-6b0c-4d11-bd99-387f4a91cc46"
OAUTH_SCOPE = "offline_access"
DEFAULT_AUTH_BASE_URL = "https://login.tado.com"
DEVICE_AUTHORIZE_PATH = "/oauth2/device_authorize"
TOKEN_PATH = "/oauth2/token"
GRANT_TYPE_DEVICE_CODE = "urn:ietf:params:oauth:grant-type:device_code"
GRANT_TYPE_REFRESH_TOKEN = "refresh_token"  # noqa: S105 - grant name, not a secret

# Token lifetime
TOKEN_EXPIRY_MARGIN_SECONDS = 30
DEFAULT_POLL_INTERVAL = 5  # seconds, RFC 8628 default
SLOW_DOWN_INCREMENT = 5  # seconds added on "slow_down"

# API Configuration
DEFAULT_API_BASE_URL = "https://my.tado.com/api/v2"
DEFAULT_HOPS_BASE_URL = "https://hops.tado.com"
ROOMS_BYPASS_PARAMS = {"ngsw-bypass": "true"}
RATE_LIMIT_HEADER = "ratelimit"
DEFAULT_TIMEOUT = 30  # seconds

# Exporter
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8005
METRICS_PATH = "/metrics"
METRIC_PREFIX = "tado_"
AUTH_MODE_POLL = "poll"
AUTH_MODE_PROMPT = "prompt"
AUTH_MODES = (AUTH_MODE_POLL, AUTH_MODE_PROMPT)
