"""SwipeMatch: swipe recording, mutual matches, daily credits and popularity ranking."""

__version__ = "1.0.0"
