"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class LoanArithmeticError(DomainException, ValueError):
    """Arithmetic called with inputs that break its preconditions"""

    pass


class NotFoundError(DomainException):
    """Requested record does not exist"""

    pass


class ProfileNotFoundError(NotFoundError):
    pass


class ApplicationNotFoundError(NotFoundError):
    pass


class LoanNotFoundError(NotFoundError):
    pass


class InvalidStatusTransitionError(DomainException):
    """Status change not allowed from the record's current status"""

    pass


class LoanNotActiveError(InvalidStatusTransitionError):
    """Payment attempted on a loan that is completed or defaulted"""

    pass


class DuplicateRecordError(DomainException):
    """Record with the same natural key already exists"""

    pass


class ImportDataError(DomainException):
    """Import row is malformed or inconsistent"""

    pass
