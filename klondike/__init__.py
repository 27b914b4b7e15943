"""
Klondike Solitaire engine.

This package contains the rules engine, the reversible command model and
the event choreography that lets any presentation layer drive a game of
Klondike without the engine knowing how cards are drawn.
"""

__version__ = "0.1.0"
__author__ = "Klondike Development Team"
