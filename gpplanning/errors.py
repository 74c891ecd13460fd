"""Exceptions raised by signed distance field queries."""


class SDFQueryOutOfRange(RuntimeError):
    """Raised when a signed distance field is queried outside its extent."""

    def __init__(self, message: str = "Querying SDF out of range") -> None:
        super().__init__(message)