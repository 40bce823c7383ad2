"""
git_ops.py — Operaciones Git del flujo de publicación.

Envuelve un git.Repo de GitPython con exactamente las operaciones
que necesita el Publisher:

    status  → dirty_paths()
    push    → push(branch)
    checkout→ checkout(branch)
    pull    → pull(branch)
    log     → latest_commit("origin/source")
    add     → stage_all(exclude)
    commit  → commit(message)

Todas usan la CLI de git a través de repo.git.*, así que cualquier
fallo llega como git.GitCommandError con el stderr de git adentro.
El Publisher es quien decide qué hacer con ese error.

Uso:
    from pagespub.publishing.git_ops import GitOperations
    git = GitOperations("/path/al/blog", remote="origin")
    if not git.dirty_paths():
        git.push(git.current_branch())
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import git as gitpython

from pagespub.utils.logger import get_logger

logger = get_logger("pagespub.git")


class GitOperations:
    """
    Operaciones Git sobre el repositorio local del sitio.

    Args:
        repo_path: Ruta al repositorio (o cualquier subdirectorio).
        remote: Nombre del remoto para push/pull.
    """

    def __init__(self, repo_path: str | Path, remote: str = "origin"):
        self._repo_path = Path(repo_path)
        self._remote = remote
        self._repo: gitpython.Repo | None = None

    @property
    def remote(self) -> str:
        return self._remote

    @property
    def repo(self) -> gitpython.Repo:
        """
        Obtiene o abre el repositorio Git.

        Raises:
            FileNotFoundError: Si la ruta no existe.
            git.InvalidGitRepositoryError: Si la ruta no es un repo Git.
        """
        if self._repo is None:
            if not self._repo_path.exists():
                raise FileNotFoundError(
                    f"No se encontró el repositorio en: {self._repo_path}\n"
                    "Verifica repo_path en config.yaml o PAGESPUB_REPO_PATH."
                )
            self._repo = gitpython.Repo(self._repo_path, search_parent_directories=True)
        return self._repo

    @property
    def working_dir(self) -> Path:
        return Path(self.repo.working_tree_dir)

    @property
    def git_dir(self) -> Path:
        return Path(self.repo.git_dir)

    # ============================================================
    # Consultas (no modifican nada)
    # ============================================================

    def dirty_paths(self, include_untracked: bool = False) -> list[str]:
        """
        Rutas con cambios sin commit, según `git status --porcelain -z`.

        Incluye archivos modificados, agregados, borrados, renombrados
        o con conflictos. Los untracked solo cuentan si se pide.
        Con -z las rutas llegan sin comillas ni escapes octales.
        """
        untracked = "all" if include_untracked else "no"
        salida = self.repo.git.status("--porcelain", "-z", f"--untracked-files={untracked}")
        return parse_porcelain(salida)

    def untracked_files(self) -> list[str]:
        """Archivos sin versionar que no están en .gitignore."""
        salida = self.repo.git.ls_files("--others", "--exclude-standard", "-z")
        return [ruta for ruta in salida.split("\0") if ruta]

    def current_branch(self) -> str:
        """
        Nombre del branch actual.

        Raises:
            RuntimeError: Si HEAD está detached.
        """
        try:
            return self.repo.active_branch.name
        except TypeError as e:
            raise RuntimeError(
                f"HEAD está detached en {self.working_dir}; haz checkout de un branch"
            ) from e

    def branch_exists(self, branch: str) -> bool:
        """True si existe el branch local."""
        return branch in [head.name for head in self.repo.heads]

    def remote_exists(self) -> bool:
        return self._remote in [r.name for r in self.repo.remotes]

    def latest_commit(self, ref: str) -> tuple[str, str]:
        """
        Hash corto y subject del último commit alcanzable desde `ref`.

        Equivale a `git log -1 --format="%h - %s" <ref>`, separado
        en sus dos partes.
        """
        salida = self.repo.git.log("-1", "--format=%h%n%s", ref, "--")
        short_hash, _, subject = salida.partition("\n")
        return short_hash.strip(), subject.strip()

    def tracked_files(self) -> list[str]:
        """Archivos versionados en el branch actual (rutas POSIX)."""
        salida = self.repo.git.ls_files("-z")
        return [ruta for ruta in salida.split("\0") if ruta]

    def has_staged_changes(self) -> bool:
        """True si el index difiere de HEAD."""
        return bool(self.repo.git.diff("--cached", "--name-only").strip())

    # ============================================================
    # Operaciones que modifican el repo
    # ============================================================

    def push(self, branch: str) -> str:
        """git push <remote> <branch>."""
        salida = self.repo.git.push(self._remote, branch)
        logger.debug(f"push {self._remote}/{branch}: {salida}")
        return salida

    def checkout(self, branch: str) -> str:
        """git checkout <branch>."""
        return self.repo.git.checkout(branch)

    def pull(self, branch: str) -> str:
        """git pull <remote> <branch> (solo fast-forward)."""
        return self.repo.git.pull("--ff-only", self._remote, branch)

    def stage_all(self, exclude: Iterable[str] = ()) -> str:
        """
        git add --all (incluye borrados).

        Las rutas de `exclude` se sacan del index después del add,
        así quedan en el worktree pero fuera del commit.
        """
        salida = self.repo.git.add("--all")
        excluidas = list(exclude)
        if excluidas:
            self.repo.git.reset("-q", "HEAD", "--", *excluidas)
            logger.debug(f"fuera del index: {', '.join(excluidas)}")
        return salida

    def commit(self, message: str) -> str:
        """
        Commit de lo que esté en el index.

        Returns:
            Hash completo del commit creado.
        """
        self.repo.git.commit("-m", message)
        return self.repo.head.commit.hexsha


def parse_porcelain(salida: str) -> list[str]:
    """
    Extrae las rutas de la salida de `git status --porcelain -z`.

    Cada entrada es "XY ruta" terminada en NUL. En renames y copias
    la entrada trae el destino y la siguiente es el origen, que se
    descarta.
    """
    rutas = []
    entradas = iter(salida.split("\0"))
    for entrada in entradas:
        if len(entrada) < 4:
            continue
        estado, ruta = entrada[:2], entrada[3:]
        rutas.append(ruta)
        if "R" in estado or "C" in estado:
            next(entradas, None)
    return rutas
