"""Constants for the Freebox exporter."""

from __future__ import annotations

VERSION = "1.0.0"

# Application identity presented to the appliance during registration
APP_ID = "fr.freebox.prometheus.exporter"
APP_NAME = "Prometheus Exporter"
APP_VERSION = VERSION

# Appliance endpoints
DEFAULT_HOST = "mafreebox.freebox.fr"
DEFAULT_HTTPS_PORT = 443
API_VERSION_PATH = "/api_version"
STATIC_API_BASE = "/api/"
API_VERSION_PREFIX = "v4/"
AUTH_HEADER = "X-Fbx-App-Auth"

LOGIN_PATH = "login/"
AUTHORIZE_PATH = "login/authorize/"
SESSION_PATH = "login/session/"
LOGOUT_PATH = "login/logout/"
LAN_CONFIG_PATH = "lan/config/"

# error_code values meaning the session token is missing or no longer valid
SESSION_REJECTED_CODES = frozenset({"auth_required", "invalid_token"})
# error_code meaning the application token itself was revoked
TOKEN_REVOKED_CODE = "invalid_token"

# Files kept in the data directory
TOKEN_FILE_NAME = "token.dat"
PINNED_CERT_FILE_NAME = "appliance.pem"
LOG_FILE_NAME = "freebox_exporter.log"

# Refresh timing (seconds)
DEFAULT_REFRESH_INTERVAL = 5
MIN_REFRESH_INTERVAL = 3  # Below this the appliance starts rate limiting
DEFAULT_TIMEOUT = 10

# Registration polling (seconds)
DEFAULT_POLLING_INTERVAL = 6
MIN_POLLING_INTERVAL = 1

# Exporter defaults
DEFAULT_PORT = 9102
DEFAULT_PREFIX = "fbx_exporter"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_RETENTION = 31

LOG_LEVELS = ("off", "error", "warn", "info", "debug", "trace")

# Dry-run redaction
REDACTED = "***REDACTED***"
