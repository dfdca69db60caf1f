"""
manifest_codec.py
- Decodes raw manifest bytes (YAML) into typed cluster and group manifests.
- The result is a tagged variant: exactly one of cluster / group is set, named by `kind`.

Example documents:

    kind: Cluster
    metadata: {name: prod.example.com}
    spec: {kubernetesVersion: "1.23.5"}

    kind: InstanceGroup
    metadata: {name: workers-a}
    spec: {role: Node}
"""

import re
from dataclasses import dataclass
from enum import Enum

import yaml

from nodelabel_orch.core.errors import DecodeError

VERSION_PATTERN = re.compile(r"^v?(\d+)\.(\d+)(?:\.\d+)?(?:[-+].*)?$")


class ManifestKind(Enum):
    CLUSTER = "Cluster"
    GROUP = "InstanceGroup"


class GroupRole(Enum):
    CONTROL_PLANE = "ControlPlane"
    API_SERVER = "APIServer"
    NODE = "Node"
    BASTION = "Bastion"


# Accepted spellings of spec.role, lower-cased. "Master" is the pre-rename name of ControlPlane.
ROLE_ALIASES = {
    "controlplane": GroupRole.CONTROL_PLANE,
    "control-plane": GroupRole.CONTROL_PLANE,
    "master": GroupRole.CONTROL_PLANE,
    "apiserver": GroupRole.API_SERVER,
    "api-server": GroupRole.API_SERVER,
    "node": GroupRole.NODE,
    "worker": GroupRole.NODE,
    "bastion": GroupRole.BASTION,
}


@dataclass(frozen=True)
class ClusterManifest:
    name: str
    kubernetes_version: str = ""

    def version_tuple(self):
        """(major, minor) of the declared Kubernetes version, or None if undeclared."""
        match = VERSION_PATTERN.match(self.kubernetes_version)
        if not match:
            return None
        return int(match.group(1)), int(match.group(2))


@dataclass(frozen=True)
class GroupManifest:
    name: str
    role: GroupRole


@dataclass(frozen=True)
class DecodedManifest:
    kind: ManifestKind
    cluster: ClusterManifest = None
    group: GroupManifest = None


def _parse_role(value):
    role = ROLE_ALIASES.get(str(value or "").strip().lower())
    if role is None:
        raise DecodeError(f"unknown instance group role {value!r}")
    return role


def _parse_version(name, value):
    if not value:
        return ""
    # unquoted 1.30 loads as the float 1.3
    if not isinstance(value, str):
        raise DecodeError(f"Cluster {name!r}: kubernetesVersion must be a quoted string, got {value!r}")
    if not VERSION_PATTERN.match(value):
        raise DecodeError(f"Cluster {name!r}: cannot parse kubernetesVersion {value!r}")
    return value


def decode_manifest(data):
    """
    Decode manifest bytes into a DecodedManifest.

    Raises:
        DecodeError: Bytes are not YAML, not a mapping, or describe an unknown kind.
    """
    try:
        doc = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise DecodeError(f"malformed manifest: {e}") from e

    if not isinstance(doc, dict):
        raise DecodeError(f"manifest must be a mapping, got {type(doc).__name__}")

    kind_name = doc.get("kind")
    try:
        kind = ManifestKind(kind_name)
    except ValueError:
        raise DecodeError(f"unknown manifest kind {kind_name!r}") from None

    metadata = doc.get("metadata") or {}
    spec = doc.get("spec") or {}
    if not isinstance(metadata, dict) or not isinstance(spec, dict):
        raise DecodeError("manifest metadata and spec must be mappings")

    name = metadata.get("name")
    if not name or not isinstance(name, str):
        raise DecodeError(f"{kind.value} manifest has no metadata.name")

    if kind is ManifestKind.CLUSTER:
        version = _parse_version(name, spec.get("kubernetesVersion"))
        return DecodedManifest(kind=kind, cluster=ClusterManifest(name=name, kubernetes_version=version))

    return DecodedManifest(kind=kind, group=GroupManifest(name=name, role=_parse_role(spec.get("role"))))


def expect_kind(decoded, kind):
    """Return the payload of `decoded` if it is tagged `kind`, else raise DecodeError."""
    if decoded.kind is not kind:
        raise DecodeError(f"unexpected manifest kind, expected {kind.value}, got {decoded.kind.value}")
    if kind is ManifestKind.CLUSTER:
        return decoded.cluster
    return decoded.group
