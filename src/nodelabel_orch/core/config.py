"""
config.py
- Defines global configuration values derived from environment variables.
- Used by the service entrypoint, the dispatcher and the CLI. Core components
  take their settings as constructor arguments and never read this module.
"""

import os

# --- Runtime Behavior Flags ---
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
DRY_RUN = os.getenv("DRY_RUN", "false").lower() == "true"
RUN_ONCE = os.getenv("RUN_ONCE", "false").lower() == "true"
EVENT_MODE = os.getenv("EVENT_MODE", "false").lower() == "true"
POLLING_MODE = os.getenv("POLLING_MODE", "true").lower() == "true"
RELABEL_TIME = int(os.getenv("RELABEL_TIME", "60"))
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "4"))

# --- Logging ---
LOG_LEVEL = "DEBUG" if DEBUG else "INFO"  # loguru string levels
SENTRY_DSN = os.getenv("SENTRY_DSN")

# --- Manifest Store ---
# Base location of cluster and group manifests: an absolute path, file:// or http(s):// URL.
CONFIG_BASE = os.getenv("CONFIG_BASE", "/etc/nodelabel-orch/config")

# --- Identity Provider ---
IDENTITY_URL = os.getenv("IDENTITY_URL", "http://127.0.0.1:8085")
IDENTITY_TOKEN = os.getenv("IDENTITY_TOKEN")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "5"))

# --- Swarm Nodes ---
# Engine label carrying the node's infrastructure identifier (e.g. aws:///us-east-1a/i-0abc).
PROVIDER_ID_LABEL = os.getenv("PROVIDER_ID_LABEL", "provider-id")
DOCKER_TIMEOUT = int(os.getenv("DOCKER_TIMEOUT", "30"))

# --- API ---
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "6060"))
