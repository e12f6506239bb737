"""Error types shared across the toolkit."""


class GHASError(Exception):
    """Base class for all toolkit errors."""

    pass


class PackSpecifierError(GHASError):
    """A pack or query specifier could not be parsed."""

    pass


class PackError(GHASError):
    """A CodeQL pack could not be loaded."""

    pass


class DatabaseError(GHASError):
    """A CodeQL database operation was invalid or failed."""

    pass


class ToolError(GHASError):
    """The CodeQL executable could not be started or exited unsuccessfully."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        returncode: int | None = None,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.command = command or []
        self.returncode = returncode
        self.output = output


class IoError(GHASError):
    """A filesystem operation failed."""

    pass


class FormatError(GHASError):
    """A YAML or JSON document could not be parsed."""

    pass


class RepositoryReferenceError(GHASError):
    """A repository reference string was malformed."""

    pass


class GitHubError(GHASError):
    """A GitHub REST API request failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigError(GHASError):
    """Configuration loading or validation error."""

    pass
