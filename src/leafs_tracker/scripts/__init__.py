"""
Command-line entry points for the Leafs result tracker.
"""
