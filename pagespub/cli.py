"""
cli.py — Punto de entrada de pagespub.

Comandos disponibles:
    pagespub                          → Igual que `pagespub publish`
    pagespub publish                  → Build + publish a gh-pages
    pagespub publish --dry-run        → Solo verifica y muestra el plan
    pagespub config --show            → Muestra configuración
    pagespub config --validate        → Valida configuración
    pagespub health                   → Verifica repo, branches y jekyll

Exit codes:
    0 ok · 1 configuración · 2 working tree sucio · 3 lock ocupado
    9–21 el paso que falló (ver publishing.publisher.Step)

Uso desde código (testing):
    from click.testing import CliRunner
    from pagespub.cli import main
    CliRunner().invoke(main, ["publish", "--dry-run"])
"""

from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

import click
import git as gitpython
import yaml
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from pagespub import __version__
from pagespub.config import OVERLAY_MODES, AppConfig, load_config
from pagespub.publishing.git_ops import GitOperations
from pagespub.publishing.publisher import (
    EXIT_CONFIG,
    PublishReport,
    Publisher,
    TOTAL_STEPS,
    planned_steps,
)
from pagespub.publishing.site_builder import SiteBuilder
from pagespub.utils.logger import get_logger, console as rich_console

logger = get_logger("pagespub.cli")


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="pagespub")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Ruta a config.yaml (por defecto se busca desde el directorio actual)",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None):
    """Publica el sitio Jekyll del branch de contenido en gh-pages."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        ctx.invoke(publish)


def _load(ctx: click.Context) -> AppConfig:
    try:
        return load_config(ctx.obj.get("config_path") if ctx.obj else None)
    except (ValueError, yaml.YAMLError) as e:
        logger.error(f"config.yaml inválido: {e}")
        sys.exit(EXIT_CONFIG)


@main.command()
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Verifica el working tree y muestra el plan, sin modificar nada",
)
@click.option(
    "--repo",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Repositorio del sitio (sobrescribe repo_path)",
)
@click.option(
    "--overlay-mode",
    type=click.Choice(OVERLAY_MODES),
    default=None,
    help="overlay = copia aditiva; replace = borra lo que el build ya no genera",
)
@click.pass_context
def publish(
    ctx: click.Context,
    dry_run: bool = False,
    repo: Path | None = None,
    overlay_mode: str | None = None,
):
    """Build del sitio y publish al branch de deploy."""
    cfg = _load(ctx)
    if repo is not None:
        cfg.repo_path = str(repo)
    if overlay_mode is not None:
        cfg.publish = replace(cfg.publish, overlay_mode=overlay_mode)

    logger.info(
        f"Publicando {cfg.git.content_branch} → {cfg.git.deploy_branch} "
        f"({cfg.repo_path})"
    )
    report = Publisher(cfg).run(dry_run=dry_run)
    _show_report(report, cfg)
    sys.exit(report.exit_code)


@main.command()
@click.option("--show", is_flag=True, help="Muestra la configuración actual")
@click.option("--validate", is_flag=True, help="Valida la configuración")
@click.pass_context
def config(ctx: click.Context, show: bool, validate: bool):
    """Gestiona la configuración de pagespub."""
    cfg = _load(ctx)

    if show:
        tabla = Table(title="Configuración de pagespub")
        tabla.add_column("Parámetro", style="cyan")
        tabla.add_column("Valor", style="green")

        tabla.add_row("Repositorio", cfg.repo_path)
        tabla.add_row("Remoto", cfg.git.remote)
        tabla.add_row("Branch de contenido", cfg.git.content_branch)
        tabla.add_row("Branch de deploy", cfg.git.deploy_branch)
        tabla.add_row("Prefijo de commit", cfg.git.commit_prefix)
        tabla.add_row("Comando de build", " ".join(
            SiteBuilder(cfg.repo_path, cfg.site).command(Path("{destination}"))
        ))
        tabla.add_row("Timeout de build", f"{cfg.site.timeout}s")
        tabla.add_row("Modo de overlay", cfg.publish.overlay_mode)
        tabla.add_row("Preservar", ", ".join(cfg.publish.preserve) or "(nada)")
        tabla.add_row("Incluir untracked", "sí" if cfg.publish.include_untracked else "no")

        rich_console.print(tabla)

    if validate:
        problemas = cfg.validate()
        if problemas:
            for p in problemas:
                logger.error(p)
            sys.exit(EXIT_CONFIG)
        logger.success("Configuración válida")


@main.command()
@click.pass_context
def health(ctx: click.Context):
    """Verifica que el repo, los branches y el generador estén listos."""
    cfg = _load(ctx)
    errores = []

    # 1. Configuración
    for problema in cfg.validate():
        errores.append(problema)
        logger.error(problema)

    # 2. Repositorio y branches
    git = GitOperations(cfg.repo_path, remote=cfg.git.remote)
    try:
        logger.success(f"Repositorio: {git.working_dir}")
        for branch in (cfg.git.content_branch, cfg.git.deploy_branch):
            if git.branch_exists(branch):
                logger.success(f"Branch '{branch}': existe")
            else:
                errores.append(f"Branch '{branch}' no existe")
                logger.error(f"Branch '{branch}': NO existe")
        if git.remote_exists():
            logger.success(f"Remoto '{cfg.git.remote}': configurado")
        else:
            errores.append(f"Remoto '{cfg.git.remote}' no configurado")
            logger.error(f"Remoto '{cfg.git.remote}': NO configurado")
    except (FileNotFoundError, gitpython.InvalidGitRepositoryError, gitpython.NoSuchPathError) as e:
        errores.append(f"Repositorio inválido: {cfg.repo_path}")
        logger.error(f"Repositorio: {e}")

    # 3. Generador del sitio
    builder = SiteBuilder(cfg.repo_path, cfg.site)
    ejecutable = builder.command(Path("."))[0]
    if builder.is_available():
        logger.success(f"Generador: {ejecutable} en PATH")
    else:
        errores.append(f"{ejecutable} no está en PATH")
        logger.error(f"Generador: {ejecutable} NO encontrado")

    if errores:
        rich_console.print(
            Panel(
                "\n".join(f"- {e}" for e in errores),
                title="Problemas encontrados",
                border_style="red",
            )
        )
        sys.exit(EXIT_CONFIG)

    rich_console.print(
        Panel(
            "Todo listo para publicar",
            title="Estado de salud",
            border_style="green",
        )
    )


# ============================================================
# Funciones auxiliares (privadas)
# ============================================================

def _show_report(report: PublishReport, cfg: AppConfig) -> None:
    """Resumen final de la corrida."""
    if report.dirty_paths:
        rich_console.print(Panel(
            escape("\n".join(report.dirty_paths)),
            title="Working tree con cambios sin commit — no se publicó nada",
            border_style="red",
        ))
        return

    if report.dry_run and report.success:
        plan = "\n".join(
            f"{step.number:>2}/{TOTAL_STEPS} {step.description}"
            for step in planned_steps()
        )
        rich_console.print(Panel(
            f"{plan}\n\n[bold]Mensaje:[/bold] {escape(report.commit_message)}",
            title="Dry run — plan de publicación",
            border_style="cyan",
        ))
        return

    if report.success:
        copiados = len(report.overlay.copied) if report.overlay else 0
        borrados = len(report.overlay.removed) if report.overlay else 0
        commit = report.commit_sha[:7] if report.commit_sha else "(sin cambios)"
        rich_console.print(Panel(
            f"[bold]Deploy:[/bold] {cfg.git.remote}/{cfg.git.deploy_branch}\n"
            f"[bold]Commit:[/bold] {commit}\n"
            f"[bold]Mensaje:[/bold] {escape(report.commit_message)}\n"
            f"[bold]Archivos:[/bold] {copiados} copiados, {borrados} borrados\n"
            f"[bold]Branch actual:[/bold] {report.final_branch}",
            title="Sitio publicado",
            border_style="green",
        ))
        return

    detalle = report.error or "Error desconocido"
    if report.recovery_hint:
        detalle += f"\n\n{report.recovery_hint}"
    rich_console.print(Panel(
        escape(detalle),
        title=f"Publish fallido (exit {report.exit_code})",
        border_style="red",
    ))


if __name__ == "__main__":
    main()
