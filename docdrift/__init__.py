"""docdrift - resilient client session for conversations, messages and documents"""

__version__ = "0.1.0"
