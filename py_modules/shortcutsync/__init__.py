"""shortcutsync - keep Steam's shortcuts.vdf and a game catalog in step."""

__version__ = "0.4.0"
