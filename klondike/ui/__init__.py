"""User interfaces for the Klondike engine."""
