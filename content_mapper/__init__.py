"""Visual Content Mapper - screenshot to SEO content analysis."""

# Lazy imports to avoid loading providers and storage at import time
# Use explicit imports when these are needed:
# from content_mapper.analysis.client import AnalysisClient, create_client
# from content_mapper.session import AnalysisSession
# from content_mapper.storage.store import LocalStore

__version__ = "0.1.0"

__all__ = [
    "AnalysisClient",
    "create_client",
    "AnalysisSession",
    "LocalStore",
]


from typing import Any


def __getattr__(name: str) -> Any:
    """Lazy import for the main entry points."""
    if name in ("AnalysisClient", "create_client"):
        from content_mapper.analysis.client import AnalysisClient, create_client

        return locals()[name]
    elif name == "AnalysisSession":
        from content_mapper.session import AnalysisSession

        return AnalysisSession
    elif name == "LocalStore":
        from content_mapper.storage.store import LocalStore

        return LocalStore
    raise AttributeError(f"module 'content_mapper' has no attribute '{name}'")
