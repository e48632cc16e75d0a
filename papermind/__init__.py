"""
PaperMind reading assistant: streaming chat-completion client.
"""

__version__ = "0.1.0"
