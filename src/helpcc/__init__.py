"""Help Command Center - a terminal browser for command reference pages."""

__version__ = "1.1.0"

from .menu import MenuNode, Selection, NavigationStack
from .content import ContentProvider, ContentError
from .display import TerminalDisplay, DialogDisplay, DependencyError
from .main import NavigationEngine, main

__all__ = [
    'MenuNode', 'Selection', 'NavigationStack', 'ContentProvider', 'ContentError',
    'TerminalDisplay', 'DialogDisplay', 'DependencyError', 'NavigationEngine', 'main',
]
