"""
identity_resolver.py
- Maps an observed node to its group name and lifecycle class.
- A group label already applied by this controller is trusted verbatim; otherwise the
  node's infrastructure identifier is looked up with the identity provider, which
  knows the real group membership and cannot be influenced by the node itself.
"""

from loguru import logger

from nodelabel_orch.core.errors import ValidationError
from nodelabel_orch.core.models import Identity
from nodelabel_orch.lib.sync.label_policy import GROUP_LABEL


class IdentityResolver:
    def __init__(self, provider, group_label=GROUP_LABEL):
        self.provider = provider
        self.group_label = group_label

    def identify(self, node):
        """
        Resolve the Identity of a node, querying the provider at most once.

        Raises:
            ValidationError: No group label and no infrastructure identifier, or the
                provider mapped the node to no group.
            NotFoundError: The provider has no mapping for the identifier.
            IdentityLookupError: The provider could not be reached (AuthError included).
        """
        group_name = node.labels.get(self.group_label, "")

        if group_name:
            # Applied by us on an earlier pass; lifecycle still comes from the provider.
            if not node.provider_id:
                logger.debug(f"[identity] {node.display_name} labeled {group_name}, no provider id; no lifecycle")
                return Identity(group_name=group_name)
            identity = self.provider.identify_node(node)
            return Identity(group_name=group_name, lifecycle_class=identity.lifecycle_class or "")

        if not node.provider_id:
            raise ValidationError(f"node providerID not set for node {node.display_name!r}")

        identity = self.provider.identify_node(node)
        if not identity.group_name:
            raise ValidationError(f"node {node.display_name!r} did not have an associated instance group")

        logger.debug(f"[identity] {node.display_name} ({node.provider_id}) belongs to {identity.group_name}")
        return Identity(group_name=identity.group_name, lifecycle_class=identity.lifecycle_class or "")
