"""
slotbook - book non-overlapping appointments and find the next free slot.
"""

__version__ = "0.1.0"
