"""
Service layer enforcing the scheduling rules on top of a storage port.
"""

from .scheduling import IntervalStoreProtocol, SchedulingService

__all__ = ["IntervalStoreProtocol", "SchedulingService"]
