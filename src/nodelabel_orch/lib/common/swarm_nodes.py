"""
swarm_nodes.py
- Node access for Docker Swarm through the Docker SDK.
- Nodes are keyed by Swarm node ID. Hostnames are not unique: a node that rejoins
  leaves a stale "Down" entry under the same hostname. The hostname is kept for logs.
- The infrastructure identifier is read from an engine label, since the engine is the
  only place a Swarm node reports where it runs.
- Label patches merge onto the node's current spec labels and are submitted as one
  versioned update, so a concurrent change to the node is rejected instead of overwritten.
"""

import docker
import requests
from loguru import logger

from nodelabel_orch.core.errors import NodeNotFoundError, PatchError, TransportError
from nodelabel_orch.core.models import Node


def node_from_attrs(attrs, provider_id_label):
    description = attrs.get("Description", {})
    engine_labels = description.get("Engine", {}).get("Labels") or {}
    return Node(
        name=attrs.get("ID", ""),
        provider_id=engine_labels.get(provider_id_label, ""),
        labels=dict(attrs.get("Spec", {}).get("Labels") or {}),
        hostname=description.get("Hostname", ""),
    )


class SwarmNodeClient:
    def __init__(self, client, provider_id_label="provider-id"):
        self.client = client
        self.provider_id_label = provider_id_label

    def _get(self, node_id):
        try:
            return self.client.nodes.get(node_id)
        except docker.errors.NotFound as e:
            raise NodeNotFoundError(f"node {node_id!r} not found") from e
        except (docker.errors.APIError, requests.RequestException) as e:
            raise TransportError(f"unable to fetch node {node_id!r}: {e}") from e

    def get(self, node_id):
        """Fetch a node by Swarm node ID. A hostname works too, while it is unambiguous."""
        return node_from_attrs(self._get(node_id).attrs, self.provider_id_label)

    def list_names(self):
        """IDs of every node in the swarm."""
        try:
            nodes = self.client.nodes.list()
        except (docker.errors.APIError, requests.RequestException) as e:
            raise TransportError(f"unable to list nodes: {e}") from e
        return [n.id for n in nodes]

    def patch(self, node_id, set_labels, delete_keys):
        """
        Set `set_labels` and remove `delete_keys` on the node in a single update.

        Labels not mentioned are left untouched.
        """
        node = self._get(node_id)
        spec = node.attrs["Spec"]
        labels = dict(spec.get("Labels") or {})
        for key in delete_keys:
            labels.pop(key, None)
        labels.update(set_labels)

        new_spec = {
            "Availability": spec["Availability"],
            "Role": spec["Role"],  # required by the API even when unchanged
            "Labels": labels,
        }
        if spec.get("Name"):
            new_spec["Name"] = spec["Name"]

        try:
            node.update(new_spec)
        except (docker.errors.APIError, requests.RequestException) as e:
            raise PatchError(f"failed to update node {node_id!r}: {e}") from e
        logger.debug(f"[swarm_nodes] Updated {node_id} at version {node.version}")
