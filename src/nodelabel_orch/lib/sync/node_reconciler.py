"""
node_reconciler.py
- One reconcile pass per node event: fetch node, resolve identity, load manifests
  through the shared cache, compute desired labels, diff, and patch if needed.
- Errors are raised to the dispatcher, which owns retry and backoff. A node that no
  longer exists is the only failure treated as success.
"""

from dataclasses import dataclass, field

from loguru import logger

from nodelabel_orch.core.constants import CLUSTER_MANIFEST_PATH, GROUP_MANIFEST_DIR, MANIFEST_TTL_SECONDS
from nodelabel_orch.core.errors import LabelerError, NodeNotFoundError, ValidationError, wrap_error
from nodelabel_orch.lib.manifests.manifest_codec import ManifestKind, decode_manifest, expect_kind
from nodelabel_orch.lib.sync.label_policy import build_labels
from nodelabel_orch.lib.sync.label_utils import diff_labels


@dataclass(frozen=True)
class ReconcileResult:
    node_name: str
    update: dict = field(default_factory=dict)
    delete: frozenset = frozenset()
    patched: bool = False
    skipped: bool = False


def group_manifest_path(group_name):
    if not group_name or "/" in group_name or group_name in (".", ".."):
        raise ValidationError(f"invalid instance group name {group_name!r}")
    return f"{GROUP_MANIFEST_DIR}/{group_name}"


class NodeLabelReconciler:
    """
    Labels nodes with the labels declared for their instance group.

    Nodes used to label themselves at startup; that is untrustworthy, so the labels
    are resolved and applied here instead. Safe to call concurrently for distinct
    nodes: the only shared state is the config cache.
    """

    def __init__(self, nodes, identifier, cache, ttl=MANIFEST_TTL_SECONDS, dry_run=False):
        self.nodes = nodes
        self.identifier = identifier
        self.cache = cache
        self.ttl = ttl
        self.dry_run = dry_run

    def load_cluster(self):
        path = CLUSTER_MANIFEST_PATH
        try:
            data = self.cache.read(path, self.ttl)
        except LabelerError as e:
            raise wrap_error(e, f"error loading Cluster {path!r}") from e
        try:
            return expect_kind(decode_manifest(data), ManifestKind.CLUSTER)
        except LabelerError as e:
            raise wrap_error(e, f"error parsing Cluster {path!r}") from e

    def load_group(self, group_name):
        path = group_manifest_path(group_name)
        try:
            data = self.cache.read(path, self.ttl)
        except LabelerError as e:
            raise wrap_error(e, f"error loading InstanceGroup {path!r}") from e
        try:
            return expect_kind(decode_manifest(data), ManifestKind.GROUP)
        except LabelerError as e:
            raise wrap_error(e, f"error parsing InstanceGroup {path!r}") from e

    def reconcile(self, name):
        """
        Run one reconcile pass for the node called `name`.

        Returns:
            ReconcileResult: What was (or, in dry run, would be) patched.

        Raises:
            LabelerError: Any failure other than the node being gone, prefixed with the node name.
        """
        try:
            node = self.nodes.get(name)
        except NodeNotFoundError:
            # deleted after the event fired; a new event will arrive if it comes back
            logger.debug(f"[reconcile] Node {name} not found, skipping")
            return ReconcileResult(node_name=name, skipped=True)
        shown = node.display_name

        try:
            cluster = self.load_cluster()
        except LabelerError as e:
            raise wrap_error(e, f"unable to load cluster object for node {shown!r}") from e

        try:
            identity = self.identifier.identify(node)
            group = self.load_group(identity.group_name)
        except LabelerError as e:
            raise wrap_error(e, f"unable to load instance group object for node {shown!r}") from e

        desired = build_labels(cluster, group, identity.lifecycle_class)
        diff = diff_labels(node.labels, desired)

        if diff.is_empty():
            logger.debug(f"[reconcile] No label changes needed for {shown}")
            return ReconcileResult(node_name=name)

        if self.dry_run:
            logger.info(f"[reconcile] (Dry Run) Would patch {shown}: set={diff.update} remove={sorted(diff.delete)}")
            return ReconcileResult(node_name=name, update=diff.update, delete=diff.delete)

        try:
            self.nodes.patch(node.name, diff.update, diff.delete)
        except LabelerError as e:
            logger.warning(f"[reconcile] Failed to patch node labels on {shown}: {e}")
            raise wrap_error(e, f"failed to patch node labels on {shown!r}") from e

        logger.info(f"[reconcile] ✅ Patched {shown}: set={diff.update} remove={sorted(diff.delete)}")
        return ReconcileResult(node_name=name, update=diff.update, delete=diff.delete, patched=True)
