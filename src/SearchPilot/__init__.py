"""SearchPilot: session-consistent search client for a remote ranking backend."""

__version__ = "0.1.0"
