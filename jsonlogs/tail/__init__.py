"""
Tail package - following files that change while they are open

Package Structure:
- follower: Fixed interval polling for appended lines (TailFollower)
- file_watch: watchdog based change notifications for one file (FileChangeWatcher)
"""
from .file_watch import FileChangeWatcher, FileEventHandler
from .follower import TailFollower

__all__ = ['FileChangeWatcher', 'FileEventHandler', 'TailFollower']
