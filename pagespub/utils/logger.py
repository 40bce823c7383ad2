"""
logger.py — Logging de pagespub usando Rich + archivo.

Dual output:
- Rich console: colores y pasos numerados para uso interactivo
- Archivo rotativo: ~/.local/state/pagespub/pagespub.log (fuera del
  repo del sitio)

Uso:
    from pagespub.utils.logger import get_logger, console
    logger = get_logger("pagespub.publisher")
    logger.step(4, 12, "Construyendo sitio...")
    logger.success("Publicado")
    logger.error("git push falló")
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

# No escribir logs a disco dentro de pytest
_in_pytest = "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ

pages_theme = Theme({
    "info": "cyan",
    "success": "bold green",
    "warning": "bold yellow",
    "error": "bold red",
    "step": "bold magenta",
})

# Consola global, compartida por todos los módulos
console = Console(theme=pages_theme)

# ================================================================
# File logging setup
# ================================================================

LOG_DIR_ENV = "PAGESPUB_LOG_DIR"
STATE_HOME_ENV = "XDG_STATE_HOME"

_file_logger: logging.Logger | None = None


def default_log_dir() -> Path:
    """
    Directorio del log rotativo.

    PAGESPUB_LOG_DIR si está definida; si no, el directorio de estado
    del usuario ($XDG_STATE_HOME o ~/.local/state). Nunca el cwd.
    """
    explicito = os.environ.get(LOG_DIR_ENV)
    if explicito:
        return Path(explicito).expanduser()
    state_home = os.environ.get(STATE_HOME_ENV)
    base = Path(state_home) if state_home else Path.home() / ".local" / "state"
    return base / "pagespub"


def _setup_file_logger() -> logging.Logger:
    """Configura el logger de archivo con rotacion."""
    global _file_logger
    if _file_logger is not None:
        return _file_logger

    if _in_pytest:
        _file_logger = logging.getLogger("pagespub.null")
        _file_logger.addHandler(logging.NullHandler())
        return _file_logger

    log_dir = default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    _file_logger = logging.getLogger("pagespub.file")
    _file_logger.setLevel(logging.DEBUG)
    _file_logger.propagate = False

    # Evitar handlers duplicados
    if not _file_logger.handlers:
        handler = RotatingFileHandler(
            log_dir / "pagespub.log",
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=5,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        _file_logger.addHandler(handler)

    return _file_logger


class PagesLogger:
    """
    Logger que imprime con Rich y replica cada mensaje al archivo.

    Cada módulo crea su propio logger con un nombre para
    identificar de dónde viene cada mensaje.

    Args:
        name: Nombre del módulo (ej: "pagespub.git")
    """

    def __init__(self, name: str):
        self._name = name

    @property
    def _file(self) -> logging.Logger:
        return _setup_file_logger()

    @property
    def name(self) -> str:
        return self._name

    def debug(self, message: str) -> None:
        """Solo al archivo, nunca a la consola."""
        self._file.debug(f"[{self._name}] {message}")

    def info(self, message: str) -> None:
        """Mensaje informativo (cyan)."""
        console.print(f"[info]i  {escape(message)}[/info]", highlight=False)
        self._file.info(f"[{self._name}] {message}")

    def success(self, message: str) -> None:
        """Mensaje de éxito (verde)."""
        console.print(f"[success][OK] {escape(message)}[/success]", highlight=False)
        self._file.info(f"[{self._name}] OK: {message}")

    def warning(self, message: str) -> None:
        """Mensaje de advertencia (amarillo)."""
        console.print(f"[warning][!] {escape(message)}[/warning]", highlight=False)
        self._file.warning(f"[{self._name}] {message}")

    def error(self, message: str) -> None:
        """Mensaje de error (rojo)."""
        console.print(f"[error][X] {escape(message)}[/error]", highlight=False)
        self._file.error(f"[{self._name}] {message}")

    def step(self, number: int, total: int, message: str) -> None:
        """Paso numerado del flujo de publicación."""
        console.print(f"[step]  [{number}/{total}] {escape(message)}[/step]", highlight=False)
        self._file.info(f"[{self._name}] [{number}/{total}] {message}")


def get_logger(name: str = "pagespub") -> PagesLogger:
    """
    Obtiene un logger para el módulo especificado.

    Ejemplo:
        logger = get_logger("pagespub.site")
        logger.info("Ejecutando jekyll build...")
    """
    return PagesLogger(name)
