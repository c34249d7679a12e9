"""Ekko - direct insertion of dictated text into editable page fields"""

__version__ = "1.0.0"
__description__ = "Direct insertion of dictated text into editable page fields"

__all__ = ["main", "EkkoRuntime", "__version__"]


def __getattr__(name: str):
    """Lazy import so ``ekko.drafts`` and ``ekko.config`` load without the runtime."""
    if name == "EkkoRuntime":
        from .runtime import EkkoRuntime

        return EkkoRuntime
    if name == "main":
        from .main import main

        return main
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
