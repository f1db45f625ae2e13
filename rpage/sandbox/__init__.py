"""Script execution in an isolated worker process."""

from .capabilities import OutputFS, ScriptCapabilityError, ScriptConsole
from .process import SandboxError, ScriptSandbox
from .protocol import KIND_ERROR, KIND_LOG, KIND_RESULT, SandboxMessage

__all__ = [
    "KIND_ERROR",
    "KIND_LOG",
    "KIND_RESULT",
    "OutputFS",
    "SandboxError",
    "SandboxMessage",
    "ScriptCapabilityError",
    "ScriptConsole",
    "ScriptSandbox",
]
