"""Exception hierarchy for the RoofScope estimator."""


class EstimatorError(Exception):
    """Base class for every error raised by the estimator."""


class ConfigurationError(EstimatorError):
    """
    Financial knobs that make the cascade mathematically undefined.

    Raised before any cost math runs, e.g. a margin of 100 % or more would
    divide the total cost by zero (or a negative number) when deriving the
    sell price.
    """

    def __init__(self, message: str, field: str = "") -> None:
        super().__init__(message)
        self.field = field


class CsvImportError(EstimatorError):
    """Raised when CSV text cannot be read as a table at all."""
