"""
errors.py
- Error taxonomy shared by the reconciler, its adapters and the dispatcher.
- Every error carries the node name or manifest path that produced it in its message.
"""


class LabelerError(Exception):
    """Base class for every failure raised while reconciling node labels."""


class NotFoundError(LabelerError):
    """A node, manifest or identity mapping does not exist."""


class NodeNotFoundError(NotFoundError):
    pass


class ManifestNotFoundError(NotFoundError):
    pass


class ValidationError(LabelerError):
    """A precondition does not hold yet (missing identifier, missing group)."""


class TransportError(LabelerError):
    """Connectivity failure talking to an external system. Transient."""


class StoreError(TransportError):
    pass


class IdentityLookupError(TransportError):
    pass


class AuthError(IdentityLookupError):
    pass


class DecodeError(LabelerError):
    """Malformed manifest bytes or a manifest of the wrong kind."""


class PatchError(LabelerError):
    """The node API rejected a label patch."""


class ConfigError(LabelerError):
    """Invalid process configuration. Raised at startup only."""


def wrap_error(err, context):
    """
    Prefix an error with the node or path it came from, keeping its type.

    Args:
        err (LabelerError): The original error.
        context (str): Description of the failing step.

    Returns:
        LabelerError: A new error of the same type, chained by the caller with ``from``.
    """
    return type(err)(f"{context}: {err}")
