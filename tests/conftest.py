from __future__ import annotations

import pytest
from fakes import CLUSTER_YAML, FakeClock, FakeNodes, FakeProvider, FakeStore, group_yaml

from nodelabel_orch.core.models import Identity
from nodelabel_orch.lib.identity.identity_resolver import IdentityResolver
from nodelabel_orch.lib.manifests.config_cache import ConfigCache
from nodelabel_orch.lib.sync.node_reconciler import NodeLabelReconciler


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore(
        {
            "cluster-completed.spec": CLUSTER_YAML,
            "instancegroup/workers-a": group_yaml("workers-a", "Node"),
            "instancegroup/control-plane-a": group_yaml("control-plane-a", "ControlPlane"),
            "instancegroup/apiservers": group_yaml("apiservers", "APIServer"),
        }
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(
        {
            "aws:///us-east-1a/i-worker": Identity(group_name="workers-a"),
            "aws:///us-east-1a/i-spot": Identity(group_name="workers-a", lifecycle_class="spot"),
            "aws:///us-east-1a/i-cp": Identity(group_name="control-plane-a"),
        }
    )


@pytest.fixture
def nodes() -> FakeNodes:
    return FakeNodes()


@pytest.fixture
def reconciler(nodes: FakeNodes, provider: FakeProvider, store: FakeStore, clock: FakeClock) -> NodeLabelReconciler:
    return NodeLabelReconciler(
        nodes=nodes,
        identifier=IdentityResolver(provider),
        cache=ConfigCache(store, clock=clock),
    )
