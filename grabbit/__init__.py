"""Grabbit — format negotiation in front of yt-dlp."""

__app_name__ = "Grabbit"
__version__ = "0.1.0"
