class SettlementError(Exception):
    """Base class for domain errors; carries the HTTP status it maps to."""
    status_code = 500

    def __init__(self, message=None):
        self.message = message or self.__class__.__doc__ or self.__class__.__name__
        super().__init__(self.message)


class ValidationError(SettlementError):
    """Malformed or out-of-range input"""
    status_code = 400


class NotFoundError(SettlementError):
    """Resource not found"""
    status_code = 404


class AuthorizationError(SettlementError):
    """Not allowed to act on this resource"""
    status_code = 403


class InsufficientBalanceError(SettlementError):
    """Insufficient balance"""
    status_code = 400


class StateConflictError(SettlementError):
    """Invalid state transition"""
    status_code = 409


class ReuploadWindowExpired(StateConflictError):
    """Reupload window has expired"""


class EscrowNotHeld(StateConflictError):
    """Escrow is not held for this order"""


class ExternalRailError(SettlementError):
    """Payment rail call failed"""
    status_code = 502


class DecryptionError(SettlementError):
    """Failed to decrypt data"""
    status_code = 400
