from skillsync.tui.renderers import SyncConsoleUI

__all__ = ["SyncConsoleUI"]
