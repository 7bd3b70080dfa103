"""hookgate - pattern-rule policy gates for git hooks."""

__version__ = "0.1.0"

from .errors import ConfigurationError, HookGateError, InputUnavailable

__all__ = ["ConfigurationError", "HookGateError", "InputUnavailable", "__version__"]
