"""
Discord OAuth2 joiner.

A chat bot hands out OAuth2 links, the callback server turns codes into
stored bindings, and batch commands use those bindings to add users to a guild.
"""

__version__ = "1.0.0"
