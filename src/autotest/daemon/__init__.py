"""Watch daemon: change detection, debouncing and the run pipeline."""

from autotest.daemon.debouncer import Debouncer, resolve_folder
from autotest.daemon.lifecycle import WatchSession, run_watch
from autotest.daemon.pipeline import Pipeline, run_once
from autotest.daemon.watcher import FolderWatcher, collect_watch_dirs, discover_source_folders

__all__ = [
    "Debouncer",
    "FolderWatcher",
    "Pipeline",
    "WatchSession",
    "collect_watch_dirs",
    "discover_source_folders",
    "resolve_folder",
    "run_once",
    "run_watch",
]
