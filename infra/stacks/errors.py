"""Errors raised while assembling the BookStack topology."""


class TopologyError(Exception):
    """Base class for all topology build errors."""
    pass


class ConfigurationError(TopologyError):
    """Invalid settings or environment identifier."""
    pass


class MissingParameterError(TopologyError):
    """A parameter-store value the build depends on does not exist."""

    def __init__(self, name: str, version: int | None = None) -> None:
        self.name = name
        self.version = version
        label = f"{name}:{version}" if version is not None else name
        super().__init__(f"SSM parameter {label} not found; aborting build")
