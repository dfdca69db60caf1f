"""
label_utils.py
- Diffs a node's current labels against the desired set.
- Only keys in the managed set are ever pruned; unrelated labels are left alone.
"""

from dataclasses import dataclass, field

from nodelabel_orch.lib.sync.label_policy import MANAGED_LABEL_KEYS


@dataclass(frozen=True)
class LabelDiff:
    update: dict = field(default_factory=dict)
    delete: frozenset = frozenset()

    def is_empty(self):
        return not self.update and not self.delete


def diff_labels(current, desired, managed_keys=MANAGED_LABEL_KEYS):
    """
    Compute the labels to set and the managed labels to remove.

    Args:
        current (dict): Labels currently on the node.
        desired (dict): Labels the node should carry.
        managed_keys (frozenset): Keys this controller owns and may prune.

    Returns:
        LabelDiff: `update` and `delete` are disjoint.
    """
    update = {k: v for k, v in desired.items() if k not in current or current[k] != v}
    delete = frozenset(k for k in current if k in managed_keys and k not in desired)
    return LabelDiff(update=update, delete=delete)


def apply_diff(current, diff):
    """Labels a node ends up with after `diff` is patched onto `current`."""
    result = {k: v for k, v in current.items() if k not in diff.delete}
    result.update(diff.update)
    return result
