#!/usr/bin/env python3
"""watchdog adapter: filesystem notifications to engine events.

Maps watchdog callbacks to event kinds:
- created  -> file_create / directory_create
- modified -> file_update (directory modifications are ignored)
- deleted  -> file_delete / directory_delete
- moved    -> file_move, reported at the destination path

Paths are reported relative to ``root`` when they lie under it.
"""

import os
from pathlib import Path
from typing import Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from fstrigger.core.constants import EventKind
from fstrigger.core.logging import Logger, get_logger
from fstrigger.core.validators import ValidationError
from fstrigger.rules.actions import Notifier
from fstrigger.rules.engine import RuleEngine
from fstrigger.rules.models import Event


class EventHandler(FileSystemEventHandler):
    """Feeds watchdog events into a RuleEngine."""

    def __init__(
        self,
        engine: RuleEngine,
        notifier: Optional[Notifier] = None,
        root: Optional[Union[str, Path]] = None,
        logger: Optional[Logger] = None,
    ):
        super().__init__()
        self.engine = engine
        self.notifier = notifier
        self.root = Path(root).resolve() if root is not None else None
        self._logger = logger or get_logger("fstrigger.watch")

    def relative_path(self, raw_path: Union[str, bytes]) -> str:
        """Return ``raw_path`` relative to the root, with ``/`` separators."""
        path = Path(os.fsdecode(raw_path))
        if self.root is not None:
            try:
                path = path.resolve().relative_to(self.root)
            except ValueError:
                pass
        return path.as_posix()

    def submit(self, raw_path: Union[str, bytes], kind: EventKind) -> None:
        """Build an Event and evaluate it."""
        try:
            event = Event(self.relative_path(raw_path), kind)
        except ValidationError as e:
            self._logger.warning("Ignoring filesystem event", path=os.fsdecode(raw_path), error=str(e))
            return

        self._logger.debug("Filesystem event", path=event.path, event=event.kind)
        self.engine.evaluate(event, self.notifier)

    def on_created(self, event: FileSystemEvent) -> None:
        kind = EventKind.DIRECTORY_CREATE if event.is_directory else EventKind.FILE_CREATE
        self.submit(event.src_path, kind)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.submit(event.src_path, EventKind.FILE_UPDATE)

    def on_deleted(self, event: FileSystemEvent) -> None:
        kind = EventKind.DIRECTORY_DELETE if event.is_directory else EventKind.FILE_DELETE
        self.submit(event.src_path, kind)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.submit(event.dest_path, EventKind.FILE_MOVE)


def start_observer(handler: EventHandler, root: Union[str, Path], recursive: bool = True) -> Observer:
    """Schedule ``handler`` on ``root`` and start a watchdog observer."""
    observer = Observer()
    observer.schedule(handler, str(root), recursive=recursive)
    observer.start()
    return observer
