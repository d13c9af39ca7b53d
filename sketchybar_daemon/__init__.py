"""
SketchyBar Daemon

Keeps SketchyBar items up to date from yabai and macOS state. A shared state
refresh feeds the window-manager driven items, while cheap local items query
their source directly, each on its own interval.
"""

__version__ = "0.2.0"
