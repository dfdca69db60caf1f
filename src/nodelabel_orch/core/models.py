"""
models.py
- Plain records passed between the reconciler and its collaborators.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Node:
    """
    Observed node: name, infrastructure identifier and current labels.

    `name` is the stable key used to fetch and patch the node. `hostname` is only
    for log lines and may be shared by several nodes.
    """

    name: str
    provider_id: str = ""
    labels: dict = field(default_factory=dict)
    hostname: str = ""

    @property
    def display_name(self):
        if self.hostname and self.hostname != self.name:
            return f"{self.hostname} ({self.name})"
        return self.name


@dataclass(frozen=True)
class Identity:
    """Group membership and lifecycle class resolved for one node."""

    group_name: str
    lifecycle_class: str = ""
