"""tab - control a real browser from the command line.

The CLI builds a command, makes sure browser-daemon is running and
exchanges the command for a response over a local socket or named pipe.
"""

__version__ = "0.1.0"
