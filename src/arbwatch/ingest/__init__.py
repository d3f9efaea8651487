"""Log ingestion: cursor, tailer, change triggers, and line parser."""

from arbwatch.ingest.cursor import WatchCursor
from arbwatch.ingest.parser import EventParser
from arbwatch.ingest.tailer import LogTailer, read_recent_lines
from arbwatch.ingest.watch import FileChangeTrigger, IntervalTrigger, LogFollower, create_trigger


__all__ = [
    "EventParser",
    "FileChangeTrigger",
    "IntervalTrigger",
    "LogFollower",
    "LogTailer",
    "WatchCursor",
    "create_trigger",
    "read_recent_lines",
]
