"""
docker_client.py
- Builds the shared Docker SDK client used for Swarm node access and node events.
- Connection is retried at startup; reconcile passes never retry internally.
"""

import docker
from loguru import logger
from tenacity import retry, stop_after_attempt, wait_fixed

from nodelabel_orch.core.config import DOCKER_TIMEOUT
from nodelabel_orch.core.constants import DOCKER_CONNECT_ATTEMPTS, DOCKER_CONNECT_WAIT


@retry(stop=stop_after_attempt(DOCKER_CONNECT_ATTEMPTS), wait=wait_fixed(DOCKER_CONNECT_WAIT), reraise=True)
def connect(timeout=DOCKER_TIMEOUT):
    """
    Connect to the local Docker engine and verify it answers.

    Returns:
        docker.DockerClient: A client configured from the environment.
    """
    client = docker.from_env(timeout=timeout)
    client.ping()
    logger.info(f"[docker] Connected to Docker engine (SDK {docker.__version__})")
    return client


def is_swarm_manager(client):
    """True if the local engine is a Swarm manager and can read node objects."""
    info = client.info()
    swarm = info.get("Swarm", {})
    return bool(swarm.get("ControlAvailable"))
