from __future__ import annotations


class HelloError(Exception):
    """Base class for errors raised by hello-ci."""


class BindFailure(HelloError):
    """The listening socket could not be created (port in use, no permission)."""

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(f"Cannot bind {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason


class ConfigError(HelloError):
    pass


class DescriptorError(ConfigError):
    """Deployment descriptor failed validation.

    ``problems`` holds one human readable line per violation.
    """

    def __init__(self, problems: list[str], source: str | None = None):
        self.problems = list(problems)
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Invalid deployment descriptor{where}: " + "; ".join(self.problems))
