"""
http_identity.py
- Identity provider backed by an HTTP lookup service.
- GET <base>/identity?providerID=<id> returns {"group": "...", "lifecycle": "..."}.
- Maps HTTP failures onto the labeler error taxonomy; never retries.
"""

import requests
from loguru import logger

from nodelabel_orch.core.errors import AuthError, IdentityLookupError, NotFoundError
from nodelabel_orch.core.models import Identity


class HttpIdentityProvider:
    def __init__(self, base_url, token=None, timeout=5.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def identify_node(self, node):
        url = f"{self.base_url}/identity"
        try:
            response = self.session.get(url, params={"providerID": node.provider_id}, timeout=self.timeout)
        except requests.RequestException as e:
            raise IdentityLookupError(f"error identifying node {node.display_name!r}: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"no instance found for providerID {node.provider_id!r} (node {node.display_name!r})")
        if response.status_code in (401, 403):
            raise AuthError(f"identity lookup for node {node.display_name!r} rejected: HTTP {response.status_code}")
        if response.status_code != 200:
            raise IdentityLookupError(f"identity lookup for node {node.display_name!r} failed: HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise IdentityLookupError(f"identity lookup for node {node.display_name!r} returned invalid JSON") from e
        if not isinstance(body, dict):
            raise IdentityLookupError(f"identity lookup for node {node.display_name!r} returned {type(body).__name__}")

        logger.debug(f"[identity] Provider answered for {node.provider_id}: {body}")
        return Identity(group_name=body.get("group") or "", lifecycle_class=body.get("lifecycle") or "")
