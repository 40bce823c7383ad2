"""
lock.py — Un solo publish a la vez por repositorio.

El lock es un archivo dentro de .git/ creado con O_CREAT | O_EXCL:
si ya existe, otro publish está corriendo (o uno anterior murió
sin limpiar; en ese caso hay que borrarlo a mano).

Uso:
    with PublishLock(git.git_dir / "pagespub.lock"):
        ...
"""

from __future__ import annotations

import os
from pathlib import Path


class LockError(RuntimeError):
    """Otro proceso tiene el lock de publicación."""


class PublishLock:
    """Lock de archivo exclusivo, usable como context manager."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as e:
            raise LockError(
                f"Ya hay un publish en curso (lock: {self.path}). "
                "Si no es así, borra el archivo y reintenta."
            ) from e
        with os.fdopen(fd, "w") as f:
            f.write(str(os.getpid()))
        self._held = True

    def release(self) -> None:
        if self._held:
            self.path.unlink(missing_ok=True)
            self._held = False

    def __enter__(self) -> "PublishLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
