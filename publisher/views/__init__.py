from . import commands, documents  # NOQA: F401
