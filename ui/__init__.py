"""
Presentation layer: terminal rendering, narration and the render boundary
"""

from .announcer import Announcer
from .boundary import RenderBoundary
from .terminal import TerminalChat

__all__ = ["Announcer", "RenderBoundary", "TerminalChat"]
