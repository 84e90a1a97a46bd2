class DomainError(Exception):
    """Base class for booking service errors."""


class SelectionRejectedError(DomainError):
    pass


class SlotConflictError(DomainError):
    pass


class ReservationNotFoundError(DomainError):
    pass


class VersionConflictError(DomainError):
    pass


class CancelNotAllowedError(DomainError):
    pass
