"""
HaruSearch - Multi-entity relevance-ranked search for an AI companion chat platform.

Example:
    >>> from harusearch.domains.search import GlobalSearchOrchestrator
    >>> orchestrator = GlobalSearchOrchestrator.from_repository(repo)
    >>> results = await orchestrator.global_search("romance", caller_id="user-1")
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
