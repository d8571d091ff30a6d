"""Error taxonomy shared by the services and the HTTP layer.

Each error carries a ``kind`` so callers can tell "not permitted" from
"wrong state" from "missing input" without matching on message text.
"""


class AssetFlowError(Exception):
    kind = "error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        payload = {"detail": self.message, "kind": self.kind}
        if self.context:
            payload["context"] = self.context
        return payload


class PermissionDeniedError(AssetFlowError):
    kind = "permission_denied"


class InvalidTransitionError(AssetFlowError):
    kind = "invalid_transition"


class ConcurrentModificationError(InvalidTransitionError):
    kind = "concurrent_modification"


class AssetValidationError(AssetFlowError):
    kind = "validation_failed"


class NotFoundError(AssetFlowError):
    kind = "not_found"


class LookupFailureError(AssetFlowError):
    kind = "lookup_failure"


class ImmutableRecordError(AssetFlowError):
    kind = "immutable_record"
