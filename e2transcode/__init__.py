"""
Configuration resolver for the transcoding server.

Deutsch:
    Konfigurationsauflösung für den Transcoding-Server.
"""

__version__ = "0.3.0"
