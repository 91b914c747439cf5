"""
radiodir - resilient asyncio client for the mirrored Radio Browser directory.
"""

__version__ = "1.0.0"
