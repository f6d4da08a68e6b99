

class BaseInvalidIdError(IndexError):
    pass


class NonExistentEventIdError(BaseInvalidIdError):
    pass


class NonExistentRecordError(BaseInvalidIdError):
    pass


class BaseValueError(ValueError):
    pass


class ValidationError(BaseValueError):
    """Malformed or out-of-range input, rejected before any state change"""
    pass


class AmbiguousAnchorError(BaseValueError):
    """More than one product matches the anchor marker name"""
    pass


class ScopeError(BaseValueError):
    pass


class PermissionDeniedError(Exception):
    pass


class RemoteSyncError(Exception):
    pass
