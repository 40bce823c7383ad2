"""
publisher.py — Publica el sitio del branch de contenido al de deploy.

Flujo completo (cada paso es un StepResult independiente):

    0. Verificar working tree limpio  → si hay cambios, abortar sin tocar nada
    1. git push <remote> <branch actual>
    2. git checkout source
    3. git pull <remote> source
    4. jekyll build --destination <tmp>
    5. git checkout gh-pages        (recordando el branch anterior)
    6. Copiar <tmp> sobre el working tree
    7. Borrar <tmp>
    8. Mensaje: "Publishing: <hash corto> - <subject>" de <remote>/source
    9. git add --all
   10. git commit -m <mensaje>
   11. git push <remote> gh-pages
   12. git checkout <branch recordado en 5>

No hay rollback: si un paso falla, el flujo se detiene ahí y el
PublishReport dice qué paso falló y en qué branch quedó el repo.
El directorio temporal se borra siempre, falle lo que falle.

Uso:
    from pagespub.config import load_config
    from pagespub.publishing.publisher import Publisher
    report = Publisher(load_config()).run()
    sys.exit(report.exit_code)
"""

from __future__ import annotations

import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

import git as gitpython

from pagespub.config import AppConfig
from pagespub.publishing.git_ops import GitOperations
from pagespub.publishing.lock import LockError, PublishLock
from pagespub.publishing.overlay import OverlayResult, overlay_build
from pagespub.publishing.site_builder import SiteBuilder
from pagespub.utils.logger import get_logger

logger = get_logger("pagespub.publisher")

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_DIRTY = 2
EXIT_LOCKED = 3

MESSAGE_SEPARATOR = " - "

# Errores que convierten un paso en StepResult fallido.
# BuildError y LockError heredan de RuntimeError.
STEP_ERRORS = (gitpython.GitCommandError, RuntimeError, OSError, ValueError)


class Step(Enum):
    """Pasos del flujo, en el orden en que se ejecutan."""
    PRECHECK = "precheck"
    PUSH_CURRENT = "push_current"
    CHECKOUT_CONTENT = "checkout_content"
    PULL_CONTENT = "pull_content"
    BUILD = "build"
    CHECKOUT_DEPLOY = "checkout_deploy"
    OVERLAY = "overlay"
    CLEANUP = "cleanup"
    COMPOSE_MESSAGE = "compose_message"
    STAGE = "stage"
    COMMIT = "commit"
    PUSH_DEPLOY = "push_deploy"
    RESTORE_BRANCH = "restore_branch"

    @property
    def number(self) -> int:
        """Posición 1-based dentro del flujo (PRECHECK es 0)."""
        return list(Step).index(self)

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self]

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


TOTAL_STEPS = len(Step) - 1

_EXIT_CODES = {
    Step.PRECHECK: 9,
    Step.PUSH_CURRENT: 10,
    Step.CHECKOUT_CONTENT: 11,
    Step.PULL_CONTENT: 12,
    Step.BUILD: 13,
    Step.CHECKOUT_DEPLOY: 14,
    Step.OVERLAY: 15,
    Step.CLEANUP: 16,
    Step.COMPOSE_MESSAGE: 17,
    Step.STAGE: 18,
    Step.COMMIT: 19,
    Step.PUSH_DEPLOY: 20,
    Step.RESTORE_BRANCH: 21,
}

_DESCRIPTIONS = {
    Step.PRECHECK: "Verificar working tree",
    Step.PUSH_CURRENT: "Push del branch actual",
    Step.CHECKOUT_CONTENT: "Checkout del branch de contenido",
    Step.PULL_CONTENT: "Pull del branch de contenido",
    Step.BUILD: "Build del sitio",
    Step.CHECKOUT_DEPLOY: "Checkout del branch de deploy",
    Step.OVERLAY: "Copiar build sobre el branch de deploy",
    Step.CLEANUP: "Borrar directorio temporal",
    Step.COMPOSE_MESSAGE: "Generar mensaje de commit",
    Step.STAGE: "git add --all",
    Step.COMMIT: "Commit",
    Step.PUSH_DEPLOY: "Push del branch de deploy",
    Step.RESTORE_BRANCH: "Volver al branch anterior",
}


@dataclass
class StepResult:
    """
    Resultado de un paso.

    Campos:
        step: Qué paso se ejecutó.
        success: Si terminó bien.
        output: Salida de la herramienta (git, jekyll) o resumen.
        error: Mensaje de error si falló.
    """
    step: Step
    success: bool
    output: str = ""
    error: str = ""


@dataclass
class PublishReport:
    """
    Resultado de una corrida completa.

    Si `success` es False, exactamente una de estas explica por qué:
    `dirty_paths` (precondición), `locked`, `failed_step` o `error`
    (configuración / repo inválido).
    """
    success: bool = False
    dry_run: bool = False
    steps: list[StepResult] = field(default_factory=list)
    dirty_paths: list[str] = field(default_factory=list)
    locked: bool = False
    failed_step: Step | None = None
    error: str = ""
    start_branch: str = ""
    restore_branch: str = ""
    final_branch: str = ""
    build_dir: Path | None = None
    commit_message: str = ""
    commit_sha: str | None = None
    overlay: OverlayResult | None = None
    untracked_left: list[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        if self.success:
            return EXIT_OK
        if self.dirty_paths:
            return EXIT_DIRTY
        if self.locked:
            return EXIT_LOCKED
        if self.failed_step is not None:
            return self.failed_step.exit_code
        return EXIT_CONFIG

    @property
    def recovery_hint(self) -> str:
        """Qué hacer después de un fallo a mitad del flujo."""
        if self.failed_step is None or self.failed_step.number <= Step.CHECKOUT_CONTENT.number:
            return ""
        volver = self.restore_branch or self.start_branch
        return (
            f"Falló el paso {self.failed_step.number}/{TOTAL_STEPS} "
            f"({self.failed_step.description}); el repositorio quedó en el "
            f"branch '{self.final_branch or '?'}'. Revisa `git status`: termina "
            f"los pasos restantes a mano, o descarta los cambios y vuelve con "
            f"`git checkout {volver}`."
        )


def compose_commit_message(prefix: str, short_hash: str, subject: str) -> str:
    """'Publishing: abc123 - Add post'"""
    return f"{prefix} {short_hash}{MESSAGE_SEPARATOR}{subject}"


class Publisher:
    """
    Orquesta el publish del sitio.

    Los colaboradores se pueden inyectar (tests, otros generadores);
    si no, se construyen desde la configuración.

    Args:
        config: Configuración de la app.
        git: Operaciones Git sobre el repo del sitio.
        builder: Cualquier objeto con `build(destination: Path) -> str`.
    """

    def __init__(
        self,
        config: AppConfig,
        git: GitOperations | None = None,
        builder: SiteBuilder | None = None,
    ):
        self._config = config
        self._git = git or GitOperations(config.repo_path, remote=config.git.remote)
        self._builder = builder
        self._build_dir: Path | None = None

    @property
    def content_ref(self) -> str:
        """Ref remota del branch de contenido, ej: origin/source."""
        return f"{self._git.remote}/{self._config.git.content_branch}"

    def _get_builder(self) -> SiteBuilder:
        if self._builder is None:
            self._builder = SiteBuilder(self._git.working_dir, self._config.site)
        return self._builder

    # ============================================================
    # Entrada principal
    # ============================================================

    def run(self, dry_run: bool = False) -> PublishReport:
        """
        Ejecuta el flujo completo (o solo la verificación si dry_run).

        Nunca lanza por fallos de git/build: todo queda en el reporte.
        """
        report = PublishReport(dry_run=dry_run)

        problemas = self._config.validate()
        if problemas:
            report.error = "; ".join(problemas)
            logger.error(f"Configuración inválida: {report.error}")
            return report

        try:
            lock = PublishLock(self._git.git_dir / self._config.publish.lock_name)
        except (FileNotFoundError, gitpython.InvalidGitRepositoryError, gitpython.NoSuchPathError) as e:
            report.error = f"Repositorio inválido: {e}"
            logger.error(report.error)
            return report

        try:
            lock.acquire()
        except LockError as e:
            report.locked = True
            report.error = str(e)
            logger.error(report.error)
            return report

        try:
            self._run_locked(report)
        finally:
            lock.release()
            self._remove_build_dir()

        if not report.success and report.failed_step is not None:
            report.final_branch = self._safe_current_branch()
            hint = report.recovery_hint
            if hint:
                logger.warning(hint)
        return report

    def _run_locked(self, report: PublishReport) -> None:
        precheck = self._execute(Step.PRECHECK, lambda: self._precheck(report))
        report.steps.append(precheck)
        if not precheck.success:
            report.failed_step = Step.PRECHECK
            report.error = precheck.error
            return
        if report.dirty_paths:
            report.error = "Working tree con cambios sin commit"
            report.final_branch = report.start_branch
            logger.error(
                f"{report.error}; no se hizo nada:\n"
                + "\n".join(f"  {ruta}" for ruta in report.dirty_paths)
            )
            return

        if report.dry_run:
            self._dry_run(report)
            return

        for step, accion in self._plan(report):
            result = self._execute(step, accion)
            report.steps.append(result)
            if not result.success:
                report.failed_step = step
                report.error = result.error
                return

        report.success = True
        report.final_branch = report.restore_branch
        logger.success(
            f"Publicado en {self._git.remote}/{self._config.git.deploy_branch}: "
            f"{report.commit_message}"
        )

    def _execute(self, step: Step, accion: Callable[[], str]) -> StepResult:
        if step is not Step.PRECHECK:
            logger.step(step.number, TOTAL_STEPS, step.description)
        try:
            output = accion()
        except STEP_ERRORS as e:
            error = str(e).strip()
            logger.error(f"{step.description}: {error}")
            return StepResult(step=step, success=False, error=error)
        return StepResult(step=step, success=True, output=output or "")

    # ============================================================
    # Pasos
    # ============================================================

    def _precheck(self, report: PublishReport) -> str:
        report.start_branch = self._git.current_branch()
        report.dirty_paths = self._git.dirty_paths(
            include_untracked=self._config.publish.include_untracked
        )
        return f"{len(report.dirty_paths)} rutas con cambios"

    def _plan(self, report: PublishReport) -> list[tuple[Step, Callable[[], str]]]:
        cfg = self._config.git
        git = self._git
        return [
            (Step.PUSH_CURRENT, lambda: git.push(report.start_branch)),
            (Step.CHECKOUT_CONTENT, lambda: git.checkout(cfg.content_branch)),
            (Step.PULL_CONTENT, lambda: git.pull(cfg.content_branch)),
            (Step.BUILD, lambda: self._build(report)),
            (Step.CHECKOUT_DEPLOY, lambda: self._checkout_deploy(report)),
            (Step.OVERLAY, lambda: self._overlay(report)),
            (Step.CLEANUP, self._cleanup),
            (Step.COMPOSE_MESSAGE, lambda: self._compose_message(report)),
            (Step.STAGE, lambda: self._stage(report)),
            (Step.COMMIT, lambda: self._commit(report)),
            (Step.PUSH_DEPLOY, lambda: git.push(cfg.deploy_branch)),
            (Step.RESTORE_BRANCH, lambda: git.checkout(report.restore_branch)),
        ]

    def _build(self, report: PublishReport) -> str:
        self._build_dir = Path(tempfile.mkdtemp(prefix=self._config.site.temp_prefix))
        report.build_dir = self._build_dir
        return self._get_builder().build(self._build_dir)

    def _checkout_deploy(self, report: PublishReport) -> str:
        report.restore_branch = self._git.current_branch()
        salida = self._git.checkout(self._config.git.deploy_branch)
        # Untracked que vienen del branch de contenido: no se publican
        report.untracked_left = self._git.untracked_files()
        return salida

    def _overlay(self, report: PublishReport) -> str:
        publish = self._config.publish
        tracked = self._git.tracked_files() if publish.overlay_mode == "replace" else []
        report.overlay = overlay_build(
            self._build_dir,
            self._git.working_dir,
            mode=publish.overlay_mode,
            tracked=tracked,
            preserve=publish.preserve,
        )
        return (
            f"{len(report.overlay.copied)} archivos copiados, "
            f"{len(report.overlay.removed)} borrados"
        )

    def _cleanup(self) -> str:
        build_dir = self._build_dir
        if build_dir is not None and build_dir.exists():
            shutil.rmtree(build_dir)
        self._build_dir = None
        return f"{build_dir} borrado"

    def _compose_message(self, report: PublishReport) -> str:
        short_hash, subject = self._git.latest_commit(self.content_ref)
        if not short_hash:
            raise ValueError(f"No hay commits en {self.content_ref}")
        report.commit_message = compose_commit_message(
            self._config.git.commit_prefix, short_hash, subject
        )
        return report.commit_message

    def _stage(self, report: PublishReport) -> str:
        copiados = set(report.overlay.copied) if report.overlay else set()
        excluir = [ruta for ruta in report.untracked_left if ruta not in copiados]
        if excluir:
            logger.warning(
                f"{len(excluir)} archivos sin versionar quedan fuera del commit: "
                f"{', '.join(excluir)}"
            )
        return self._git.stage_all(exclude=excluir)

    def _commit(self, report: PublishReport) -> str:
        if not self._git.has_staged_changes():
            logger.warning("El build no cambió nada; no se crea commit")
            return "nada que commitear"
        report.commit_sha = self._git.commit(report.commit_message)
        return report.commit_sha

    def _dry_run(self, report: PublishReport) -> None:
        result = self._execute(Step.COMPOSE_MESSAGE, lambda: self._compose_message(report))
        report.steps.append(result)
        if not result.success:
            report.failed_step = Step.COMPOSE_MESSAGE
            report.error = result.error
            return
        report.success = True
        report.final_branch = report.start_branch
        logger.info(f"Dry run: se publicaría con el mensaje '{report.commit_message}'")

    # ============================================================
    # Helpers
    # ============================================================

    def _remove_build_dir(self) -> None:
        """Borra el directorio temporal si un fallo lo dejó atrás."""
        if self._build_dir is not None and self._build_dir.exists():
            try:
                shutil.rmtree(self._build_dir)
            except OSError as e:
                logger.warning(f"No se pudo borrar {self._build_dir}: {e}")
        self._build_dir = None

    def _safe_current_branch(self) -> str:
        try:
            return self._git.current_branch()
        except STEP_ERRORS as e:
            logger.debug(f"No se pudo leer el branch actual: {e}")
            return ""


def planned_steps() -> list[Step]:
    """Pasos que ejecuta un publish real, sin PRECHECK."""
    return [step for step in Step if step is not Step.PRECHECK]
