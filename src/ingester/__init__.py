"""
Native ingester: consumes publication events from the queue proxy, writes the
native content to its collection in the native store and optionally forwards
the event to a second queue.
"""

__version__ = "1.0.0"
