"""
Leafs result tracker: did the Leafs lose their last game?
"""

__version__ = "1.0.0"
