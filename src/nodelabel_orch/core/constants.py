"""
constants.py
- Project-wide constants shared across reconciler, dispatcher and adapters.
- Includes manifest paths, cache lifetimes and retry intervals.
"""

# --- Manifest Layout ---
CLUSTER_MANIFEST_PATH = "cluster-completed.spec"
GROUP_MANIFEST_DIR = "instancegroup"

# --- Cache Lifetimes ---
MANIFEST_TTL_SECONDS = 3600  # one hour for both cluster and group manifests

# --- Retry Timing Defaults ---
DEFAULT_RETRY_INTERVALS = [2, 10, 60, 300, 900]  # in seconds

# --- Docker Client ---
DOCKER_CONNECT_ATTEMPTS = 3
DOCKER_CONNECT_WAIT = 5  # seconds between connection attempts
EVENT_RECONNECT_MAX_WAIT = 60  # cap on backoff between event stream reconnects
