"""
NHL web API collectors.
"""

from .base import BaseCollector
from .schedule import ScheduleCollector, ScheduleSnapshot, classify_schedule
from .game_detail import GameDetailCollector

__all__ = [
    'BaseCollector',
    'ScheduleCollector',
    'ScheduleSnapshot',
    'classify_schedule',
    'GameDetailCollector',
]
