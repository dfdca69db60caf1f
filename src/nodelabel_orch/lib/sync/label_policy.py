"""
label_policy.py
- Computes the full desired label set for a node from its cluster manifest, group
  manifest and lifecycle class. Pure: no I/O, same inputs give the same map.
- Role labels are emitted under every label-scheme generation still in use, so
  tooling reading either the old or the new keys sees the same role.
"""

from nodelabel_orch.lib.manifests.manifest_codec import GroupRole

ROLE_NAMESPACE = "node-role.kubernetes.io"

# --- Group Label ---
GROUP_LABEL = "kops.k8s.io/instancegroup"

# --- Role Labels (by generation) ---
ROLE_LABEL_MASTER = f"{ROLE_NAMESPACE}/master"
ROLE_LABEL_API_SERVER = f"{ROLE_NAMESPACE}/api-server"
ROLE_LABEL_NODE = f"{ROLE_NAMESPACE}/node"
ROLE_LABEL_CONTROL_PLANE = f"{ROLE_NAMESPACE}/control-plane"
EXCLUDE_FROM_LB_LABEL = "node.kubernetes.io/exclude-from-external-load-balancers"

# Single-key role name used before the per-role keys; dropped from Kubernetes 1.24 on.
ROLE_NAME_LABEL = "kubernetes.io/role"
ROLE_NAME_MASTER = "master"
ROLE_NAME_API_SERVER = "api-server"
ROLE_NAME_NODE = "node"
LEGACY_ROLE_NAME_UNTIL = (1, 24)

# Every key this controller may prune from a node. The exclude-from-LB key is
# written for control-plane groups but is also set by hand on workers, so it is
# never pruned.
MANAGED_LABEL_KEYS = frozenset({
    GROUP_LABEL,
    ROLE_LABEL_MASTER,
    ROLE_LABEL_API_SERVER,
    ROLE_LABEL_NODE,
    ROLE_LABEL_CONTROL_PLANE,
    ROLE_NAME_LABEL,
})

# Every fixed key build_labels may write.
WRITTEN_LABEL_KEYS = MANAGED_LABEL_KEYS | {EXCLUDE_FROM_LB_LABEL}

_ROLE_LABELS = {
    GroupRole.CONTROL_PLANE: (ROLE_LABEL_CONTROL_PLANE, ROLE_LABEL_MASTER, EXCLUDE_FROM_LB_LABEL),
    GroupRole.API_SERVER: (ROLE_LABEL_API_SERVER,),
    GroupRole.NODE: (ROLE_LABEL_NODE,),
    GroupRole.BASTION: (ROLE_LABEL_NODE,),
}

_ROLE_NAMES = {
    GroupRole.CONTROL_PLANE: ROLE_NAME_MASTER,
    GroupRole.API_SERVER: ROLE_NAME_API_SERVER,
    GroupRole.NODE: ROLE_NAME_NODE,
    GroupRole.BASTION: ROLE_NAME_NODE,
}


def lifecycle_label(lifecycle_class):
    """Key marking a node of a special lifecycle, e.g. node-role.kubernetes.io/spot-worker."""
    return f"{ROLE_NAMESPACE}/{lifecycle_class}-worker"


def wants_legacy_role_name(cluster):
    version = cluster.version_tuple()
    return version is None or version < LEGACY_ROLE_NAME_UNTIL


def build_labels(cluster, group, lifecycle_class=""):
    """
    Build the desired labels for a node in `group`.

    Args:
        cluster (ClusterManifest): Cluster-wide configuration.
        group (GroupManifest): The node's instance group.
        lifecycle_class (str): Provisioning lifecycle such as "spot"; "" for none.

    Returns:
        dict: label key -> value.
    """
    labels = {GROUP_LABEL: group.name}

    for key in _ROLE_LABELS[group.role]:
        labels[key] = "true"

    if wants_legacy_role_name(cluster):
        labels[ROLE_NAME_LABEL] = _ROLE_NAMES[group.role]

    if lifecycle_class:
        labels[lifecycle_label(lifecycle_class)] = "true"

    return labels
