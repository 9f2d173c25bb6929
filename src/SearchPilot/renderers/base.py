"""Base classes for output writers.

Separates the controller's render-ready snapshot from how it is shown.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from SearchPilot.services.controller import SearchSnapshot


class OutputWriter(ABC):
    """Abstract base class for snapshot output writers."""

    @abstractmethod
    def write_snapshot(self, snapshot: SearchSnapshot) -> None:
        """Write one settled snapshot (success, failure or empty result).

        Args:
            snapshot: Controller snapshot to display.
        """
