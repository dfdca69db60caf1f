from __future__ import annotations

import pytest
from fakes import FakeProvider

from nodelabel_orch.core.errors import AuthError, IdentityLookupError, NotFoundError, ValidationError
from nodelabel_orch.core.models import Identity, Node
from nodelabel_orch.lib.identity.identity_resolver import IdentityResolver
from nodelabel_orch.lib.sync.label_policy import GROUP_LABEL


def test_explicit_group_label_is_trusted(provider: FakeProvider) -> None:
    node = Node(name="n1", provider_id="aws:///us-east-1a/i-spot", labels={GROUP_LABEL: "special"})

    identity = IdentityResolver(provider).identify(node)

    assert identity == Identity(group_name="special", lifecycle_class="spot")
    assert provider.calls == ["n1"]


def test_explicit_label_without_identifier_skips_provider(provider: FakeProvider) -> None:
    node = Node(name="n1", labels={GROUP_LABEL: "workers-a"})

    identity = IdentityResolver(provider).identify(node)

    assert identity == Identity(group_name="workers-a", lifecycle_class="")
    assert provider.calls == []


def test_missing_identifier_is_validation_error_without_lookup(provider: FakeProvider) -> None:
    node = Node(name="n1", provider_id="")

    with pytest.raises(ValidationError, match="providerID not set"):
        IdentityResolver(provider).identify(node)

    assert provider.calls == []


def test_identifier_invokes_provider_exactly_once(provider: FakeProvider) -> None:
    node = Node(name="n1", provider_id="aws:///us-east-1a/i-spot")

    identity = IdentityResolver(provider).identify(node)

    assert identity == Identity(group_name="workers-a", lifecycle_class="spot")
    assert provider.calls == ["n1"]


def test_unmapped_identifier_is_not_found(provider: FakeProvider) -> None:
    with pytest.raises(NotFoundError):
        IdentityResolver(provider).identify(Node(name="n1", provider_id="aws:///x/i-unknown"))


def test_provider_without_group_is_validation_error() -> None:
    provider = FakeProvider({"gce://p/z/vm": Identity(group_name="")})

    with pytest.raises(ValidationError, match="associated instance group"):
        IdentityResolver(provider).identify(Node(name="vm", provider_id="gce://p/z/vm"))


@pytest.mark.parametrize("error", [IdentityLookupError("timeout"), AuthError("forbidden")])
def test_transport_errors_propagate(provider: FakeProvider, error: Exception) -> None:
    provider.error = error

    with pytest.raises(type(error)):
        IdentityResolver(provider).identify(Node(name="n1", provider_id="aws:///us-east-1a/i-worker"))
