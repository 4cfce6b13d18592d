from __future__ import annotations

import logging
import shutil
import tempfile
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from .errors import StagingIOError

logger = logging.getLogger(__name__)


def _unique_dir_name(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


@dataclass
class StagingArea:
    """Request-scoped working directory.

    Holds the primary document and every fetched asset until the archive
    has been streamed. `teardown()` removes the directory once; further
    calls are no-ops.
    """

    root: Path
    _torn_down: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    @classmethod
    def create(
        cls,
        parent: Path | None = None,
        *,
        prefix: str = "capture",
        attempts: int = 5,
    ) -> StagingArea:
        base = Path(parent) if parent is not None else Path(tempfile.gettempdir())
        try:
            base.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StagingIOError(base, e) from e

        last_error: OSError | None = None
        for _ in range(attempts):
            root = base / _unique_dir_name(prefix)
            try:
                root.mkdir(exist_ok=False)
            except FileExistsError as e:
                last_error = e
                continue
            except OSError as e:
                raise StagingIOError(root, e) from e
            logger.debug("Staging area created at %s", root)
            return cls(root)
        raise StagingIOError(base, last_error or OSError("no unique name"))

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def path_for(self, name: str) -> Path:
        if not name or name in {".", ".."} or Path(name).name != name:
            raise StagingIOError(
                self.root / str(name), ValueError("not a bare file name")
            )
        return self.root / name

    def contains(self, name: str) -> bool:
        return (self.root / name).is_file()

    def write_entry(self, name: str, data: bytes | str) -> Path:
        path = self.path_for(name)
        try:
            if isinstance(data, str):
                path.write_text(data, encoding="utf-8", newline="")
            else:
                path.write_bytes(data)
        except OSError as e:
            raise StagingIOError(path, e) from e
        return path

    def files(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.iterdir() if p.is_file())

    def teardown(self) -> None:
        with self._lock:
            if self._torn_down:
                return
            self._torn_down = True
        try:
            shutil.rmtree(self.root)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Cleanup failed for %s: %s", self.root, e)
        else:
            logger.debug("Staging area removed: %s", self.root)

    def __enter__(self) -> StagingArea:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.teardown()
