"""Error classes and helpers"""

__all__ = [
    "ParseError",
    "AnalysisError",
    "NotFound",
    "Opaque",
    "ResolutionError",
    "UnresolvedCommandName",
    "MissingSignature",
    "UnknownPosition",
    "MissingSplatSource",
    "SplatSourceNotFound",
    "AmbiguousSplatSource",
    "DynamicSplatSource",
    "BatchAborted",
]


class ParseError(Exception):
    """Exception raised for parsing errors.

    Args:
        message: (str) Error description
        position: (SourcePosition | None) Where the error occurred

    Attributes:
        message: (str) Error description
        position: (SourcePosition | None) Where the error occurred
    """

    def __init__(self, message, position=None):
        self.message = message
        self.position = position
        super().__init__(message)

    def __str__(self):
        if self.position is not None:
            return f"{self.position}: {self.message}"
        return self.message


class AnalysisError(Exception):
    """Requested function cannot be analyzed at all."""

    def __init__(self, message, function=None):
        self.message = message
        self.function = function
        super().__init__(message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class NotFound(AnalysisError):
    """No function with the requested name exists in the script."""


class Opaque(AnalysisError):
    """Requested name is a known command without an inspectable body."""


class ResolutionError(Exception):
    """Failure to resolve the bindings of one invocation.

    These are reported next to resolved references and never stop the
    analysis of the remaining invocations.

    Attributes:
        message: (str) Error description
        position: (SourcePosition | None) Location of the invocation
        command: (str | None) Name of the invoked command when known
    """

    def __init__(self, message, position=None, command=None):
        self.message = message
        self.position = position
        self.command = command
        super().__init__(message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __str__(self):
        if self.position is not None:
            return f"{self.position}: {self.kind}: {self.message}"
        return f"{self.kind}: {self.message}"

    def __eq__(self, other):
        if not isinstance(other, ResolutionError):
            return NotImplemented
        return (type(self), self.message, self.position, self.command) == (
            type(other), other.message, other.position, other.command)

    def __hash__(self):
        return hash((type(self), self.message, self.position, self.command))

    def located(self, position, command=None):
        """Copy of this error bound to an invocation site."""
        return type(self)(self.message, position, command or self.command)


class UnresolvedCommandName(ResolutionError):
    """Invoked command name is computed at run time."""


class MissingSignature(ResolutionError):
    """Positional argument given to a command with no known signature."""


class UnknownPosition(ResolutionError):
    """No parameter is declared at the positional argument's ordinal."""


class MissingSplatSource(ResolutionError):
    """Splatted argument resolved without an enclosing scope."""


class SplatSourceNotFound(ResolutionError):
    """Splatted variable is never assigned before the invocation."""


class AmbiguousSplatSource(ResolutionError):
    """Strict policy found more than one hashtable assigned to the variable."""


class DynamicSplatSource(ResolutionError):
    """Splatted variable is not a static hashtable literal."""


class BatchAborted(Exception):
    """Batch analysis stopped at the first failure.

    Attributes:
        function: (str) Name of the function whose analysis failed
        error: (Exception) The underlying AnalysisError or ResolutionError
    """

    def __init__(self, function, error):
        self.function = function
        self.error = error
        super().__init__(f"Analysis of {function} aborted: {error}")
