"""Caller-visible errors for maturity-scorecard."""


class InvalidProjectPath(ValueError):
    """The project path does not exist or is not a directory."""

    def __init__(self, path: object, reason: str = "does not exist") -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Invalid project path '{self.path}': {reason}")
