"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidScoringInputError(DomainException, ValueError):
    """Scoring signal or weight is outside its declared domain"""

    pass


class InvalidBudgetError(DomainException, ValueError):
    """Allocation budget is negative or not a finite number"""

    pass


class PackageNotFoundError(DomainException):
    """Package does not exist in the registry or the local database"""

    pass


class RegistryAPIError(DomainException):
    """Package registry returned an error or is unavailable"""

    pass


class FundingPlatformError(DomainException):
    """Funding platform API returned an error after all retries"""

    pass


class CuratedDataError(DomainException, ValueError):
    """Curated data file does not have the expected shape"""

    pass
