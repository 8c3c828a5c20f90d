"""Stream Herald: Twitch live-stream notifications for chat communities."""

__version__ = "0.1.0"
