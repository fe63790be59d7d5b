# swipe_deck/__init__.py
"""
SwipeDeck package initializer.
Defines the package version and exposes the core components.
"""
__version__ = "0.1.0"

from swipe_deck.cache import LRUPolicy, SessionCache, UnboundedPolicy
from swipe_deck.lifecycle import LifecycleCoordinator, ScenePhase
from swipe_deck.models import Page
from swipe_deck.registry import PageRegistry

__all__ = [
    "__version__",
    "LRUPolicy",
    "LifecycleCoordinator",
    "Page",
    "PageRegistry",
    "ScenePhase",
    "SessionCache",
    "UnboundedPolicy",
]
