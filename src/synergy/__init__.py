"""SynergySphere — team project collaboration backend.

Projects, members, a To-Do / In-Progress / Done task board and task
comments, with live per-project updates pushed over websockets.
"""

__version__ = "0.1.0"
