"""Exception types raised by hookgate."""


class HookGateError(Exception):
    """Base class for hookgate errors."""


class ConfigurationError(HookGateError):
    """
    A rule or rules file is malformed.

    Raised while rules are loaded, before any rule runs. Fatal for the
    invocation.
    """


class InputUnavailable(HookGateError):
    """
    The context a hook needs could not be read.

    Examples: the commit message file does not exist, a git command failed,
    a push ref line from stdin is malformed. Adapters turn this into a
    denied outcome with its own diagnostic.
    """
