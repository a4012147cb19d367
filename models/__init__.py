"""
Domain models for the refuge monitor.
"""

from .refuge import Refuge, REFUGES, FULL, get_refuge
from .subscriber import Subscriber, Query

__all__ = ['Refuge', 'REFUGES', 'FULL', 'get_refuge', 'Subscriber', 'Query']
