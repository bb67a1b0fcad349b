"""
Runtime settings for Grabbit.

Values come from DEFAULTS, overridden key by key by an optional
``grabbit_settings.json`` in the working directory. A missing or
unreadable file simply means "use the defaults".
"""

import os
import json

SETTINGS_FILE = "grabbit_settings.json"

DEFAULTS = {
    "ytdlp_path": "yt-dlp",
    "cookie_file": "youtube_cookies.txt",
    "tmp_dir": "tmp_downloads",
    "info_timeout": 30,              # seconds per metadata attempt
    "download_timeout": 20 * 60,     # seconds per download attempt
    "desired_language": "en",
    "stale_file_hours": 24,
    "port": 4000,
}


def load_settings() -> dict:
    """DEFAULTS merged with whatever the settings file overrides."""
    settings = dict(DEFAULTS)
    if not os.path.exists(SETTINGS_FILE):
        return settings
    try:
        with open(SETTINGS_FILE, "r", encoding="utf-8") as f:
            overrides = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        print(f"  ⚠️  Ignoring {SETTINGS_FILE}: {e}")
        return settings
    if isinstance(overrides, dict):
        settings.update(overrides)
    return settings
