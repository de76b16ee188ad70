"""Exception types shared across the status scheduler."""


class StatusSchedulerError(Exception):
    """Base class for all scheduler errors."""


class ConfigError(StatusSchedulerError):
    """Process configuration cannot be used (raised at startup)."""


class ConfigReadError(StatusSchedulerError):
    """The schedule file could not be read."""


class ConfigParseError(StatusSchedulerError):
    """The schedule file is not valid TOML."""


class SecretNotFoundError(StatusSchedulerError):
    """A required secret is missing from the secrets directory."""


class RemoteError(StatusSchedulerError):
    """Any failure talking to the remote status service.

    `method` names the API method that failed so logs can point at it.
    """

    def __init__(self, message: str, method: str = "") -> None:
        super().__init__(message)
        self.method = method

    def __str__(self) -> str:
        base = super().__str__()
        return f"{self.method}: {base}" if self.method else base
