class DatabaseUnavailableError(RuntimeError):
    """A mutation was attempted while no database is configured."""

    def __init__(self, message: str = "Database not available") -> None:
        super().__init__(message)


class InvalidIdentityError(ValueError):
    """An identity assertion is missing its external id."""
