"""
Utility modules for the Leafs result tracker.
"""

from .api_tracker import APITracker, api_tracker
from .polling_window import PollingWindow, WindowDecision

__all__ = [
    'APITracker',
    'api_tracker',
    'PollingWindow',
    'WindowDecision',
]
