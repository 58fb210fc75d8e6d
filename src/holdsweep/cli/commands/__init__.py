# holdsweep/cli/commands: Command modules for the holdsweep CLI.

from .advise import advise
from .licenses import licenses
from .run import run

__all__ = [
    "advise",
    "licenses",
    "run",
]
