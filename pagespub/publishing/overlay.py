"""
overlay.py — Copia el build sobre el working tree del branch de deploy.

Dos modos:

    overlay  → copia aditiva: sobrescribe lo que el build genera y deja
               intacto todo lo demás (archivos viejos incluidos).
    replace  → igual que overlay, pero además borra los archivos
               versionados que el build ya no genera, salvo los de
               `preserve` (CNAME, .nojekyll, ...).

`.git` nunca se toca en ninguno de los dos modos.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable

from pagespub.utils.logger import get_logger

logger = get_logger("pagespub.overlay")

_NEVER_TOUCH = ".git"


@dataclass
class OverlayResult:
    """Archivos copiados y borrados (rutas POSIX relativas al working tree)."""
    copied: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


def _is_preserved(ruta: str, preserve: Iterable[str]) -> bool:
    partes = PurePosixPath(ruta).parts
    if partes and partes[0] == _NEVER_TOUCH:
        return True
    for patron in preserve:
        patron = patron.strip("/")
        if ruta == patron or ruta.startswith(patron + "/"):
            return True
    return False


def overlay_build(
    build_dir: Path,
    worktree: Path,
    mode: str = "overlay",
    tracked: Iterable[str] = (),
    preserve: Iterable[str] = (),
) -> OverlayResult:
    """
    Aplica el contenido de `build_dir` sobre `worktree`.

    Args:
        build_dir: Directorio con el sitio renderizado.
        worktree: Raíz del working tree del branch de deploy.
        mode: "overlay" o "replace".
        tracked: Archivos versionados en el branch de deploy
            (solo se usa en modo replace).
        preserve: Rutas que el modo replace no borra.

    Returns:
        OverlayResult con lo copiado y lo borrado.

    Raises:
        ValueError: Si el modo no es válido.
        OSError: Si falla alguna copia o borrado.
    """
    if mode not in ("overlay", "replace"):
        raise ValueError(f"Modo de overlay desconocido: {mode}")

    preserve = list(preserve)
    result = OverlayResult()

    for origen in sorted(build_dir.rglob("*")):
        relativa = origen.relative_to(build_dir).as_posix()
        if PurePosixPath(relativa).parts[0] == _NEVER_TOUCH:
            continue
        destino = worktree / relativa
        if origen.is_dir():
            destino.mkdir(parents=True, exist_ok=True)
            continue
        destino.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(origen, destino)
        result.copied.append(relativa)

    if mode == "replace":
        generados = set(result.copied)
        for ruta in tracked:
            if ruta in generados or _is_preserved(ruta, preserve):
                continue
            objetivo = worktree / ruta
            if objetivo.is_file() or objetivo.is_symlink():
                objetivo.unlink()
                result.removed.append(ruta)
                _prune_empty_parents(objetivo.parent, worktree)

    logger.debug(
        f"overlay ({mode}): {len(result.copied)} copiados, "
        f"{len(result.removed)} borrados"
    )
    return result


def _prune_empty_parents(directorio: Path, raiz: Path) -> None:
    """Borra directorios vacíos hacia arriba hasta `raiz` (sin incluirla)."""
    while directorio != raiz and raiz in directorio.parents:
        if any(directorio.iterdir()):
            return
        directorio.rmdir()
        directorio = directorio.parent
