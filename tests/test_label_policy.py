from __future__ import annotations

from nodelabel_orch.lib.manifests.manifest_codec import ClusterManifest, GroupManifest, GroupRole
from nodelabel_orch.lib.sync.label_policy import (
    EXCLUDE_FROM_LB_LABEL,
    GROUP_LABEL,
    MANAGED_LABEL_KEYS,
    ROLE_LABEL_API_SERVER,
    ROLE_LABEL_CONTROL_PLANE,
    ROLE_LABEL_MASTER,
    ROLE_LABEL_NODE,
    ROLE_NAME_LABEL,
    WRITTEN_LABEL_KEYS,
    build_labels,
    lifecycle_label,
)

LEGACY_CLUSTER = ClusterManifest(name="prod", kubernetes_version="1.23.5")
CURRENT_CLUSTER = ClusterManifest(name="prod", kubernetes_version="v1.29.0")


def test_worker_labels_cover_every_generation() -> None:
    """
    Per-role keys carry "true", but kubernetes.io/role carries the role name ("node"),
    as kops and kubectl read it. This departs from the all-"true" worker example on purpose.
    """
    labels = build_labels(LEGACY_CLUSTER, GroupManifest(name="workers-a", role=GroupRole.NODE))

    assert labels == {
        GROUP_LABEL: "workers-a",
        ROLE_LABEL_NODE: "true",
        ROLE_NAME_LABEL: "node",
    }


def test_control_plane_sets_current_and_legacy_role_keys() -> None:
    labels = build_labels(LEGACY_CLUSTER, GroupManifest(name="cp", role=GroupRole.CONTROL_PLANE))

    assert labels[ROLE_LABEL_CONTROL_PLANE] == "true"
    assert labels[ROLE_LABEL_MASTER] == "true"
    assert labels[EXCLUDE_FROM_LB_LABEL] == "true"
    assert labels[ROLE_NAME_LABEL] == "master"
    assert ROLE_LABEL_NODE not in labels


def test_api_server_role() -> None:
    labels = build_labels(LEGACY_CLUSTER, GroupManifest(name="api", role=GroupRole.API_SERVER))

    assert labels[ROLE_LABEL_API_SERVER] == "true"
    assert labels[ROLE_NAME_LABEL] == "api-server"


def test_bastion_is_labeled_as_node() -> None:
    labels = build_labels(LEGACY_CLUSTER, GroupManifest(name="bastions", role=GroupRole.BASTION))

    assert labels[ROLE_LABEL_NODE] == "true"


def test_legacy_role_name_dropped_from_1_24() -> None:
    labels = build_labels(CURRENT_CLUSTER, GroupManifest(name="workers-a", role=GroupRole.NODE))

    assert ROLE_NAME_LABEL not in labels
    assert labels[ROLE_LABEL_NODE] == "true"


def test_legacy_role_name_kept_when_version_undeclared() -> None:
    labels = build_labels(ClusterManifest(name="prod"), GroupManifest(name="w", role=GroupRole.NODE))

    assert labels[ROLE_NAME_LABEL] == "node"


def test_lifecycle_class_adds_worker_key() -> None:
    labels = build_labels(LEGACY_CLUSTER, GroupManifest(name="w", role=GroupRole.NODE), "spot")

    assert labels["node-role.kubernetes.io/spot-worker"] == "true"
    assert lifecycle_label("spot") == "node-role.kubernetes.io/spot-worker"


def test_empty_lifecycle_adds_nothing() -> None:
    with_empty = build_labels(LEGACY_CLUSTER, GroupManifest(name="w", role=GroupRole.NODE), "")

    assert not any(key.endswith("-worker") for key in with_empty)


def test_build_labels_is_deterministic() -> None:
    group = GroupManifest(name="cp", role=GroupRole.CONTROL_PLANE)

    first = build_labels(LEGACY_CLUSTER, group, "spot")
    second = build_labels(LEGACY_CLUSTER, group, "spot")

    assert first == second
    assert first is not second


def test_emits_only_known_or_lifecycle_keys() -> None:
    for role in GroupRole:
        for cluster in (LEGACY_CLUSTER, CURRENT_CLUSTER):
            labels = build_labels(cluster, GroupManifest(name="g", role=role), "preemptible")
            extra = set(labels) - WRITTEN_LABEL_KEYS
            assert extra == {lifecycle_label("preemptible")}


def test_exclude_from_lb_is_written_but_never_pruned() -> None:
    labels = build_labels(CURRENT_CLUSTER, GroupManifest(name="cp", role=GroupRole.CONTROL_PLANE))

    assert labels[EXCLUDE_FROM_LB_LABEL] == "true"
    assert EXCLUDE_FROM_LB_LABEL not in MANAGED_LABEL_KEYS


def test_legacy_role_name_label_carries_role_name_not_true() -> None:
    for role, name in ((GroupRole.NODE, "node"), (GroupRole.CONTROL_PLANE, "master"), (GroupRole.API_SERVER, "api-server")):
        labels = build_labels(LEGACY_CLUSTER, GroupManifest(name="g", role=role))

        assert labels[ROLE_NAME_LABEL] == name
        assert all(value == "true" for key, value in labels.items() if key.startswith("node-role.kubernetes.io/"))
