"""
config.py — Carga y gestiona la configuración de pagespub.

Se encarga de:
1. Cargar .env (rutas locales, overrides por máquina)
2. Cargar config.yaml (branches, comando de build, modo de overlay)
3. Resolver variables de entorno en los valores de config
4. Convertir cada sección a su dataclass

Ejemplo de config.yaml:

    repo_path: ${BLOG_REPO_PATH}
    site:
      build_command: ["jekyll", "build", "--destination", "{destination}"]
      use_bundler: true
    git:
      remote: origin
      content_branch: source
      deploy_branch: gh-pages
    publish:
      overlay_mode: overlay

Uso:
    from pagespub.config import load_config
    config = load_config()
    print(config.git.deploy_branch)  # "gh-pages"
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv


OVERLAY_MODES = ("overlay", "replace")

REPO_PATH_ENV = "PAGESPUB_REPO_PATH"


# ============================================================
# Dataclasses de configuración
# ============================================================

@dataclass
class SiteConfig:
    """Configuración del generador del sitio (Jekyll)."""
    build_command: list[str] = field(default_factory=lambda: [
        "jekyll", "build", "--destination", "{destination}",
    ])
    use_bundler: bool = False
    timeout: int = 600
    temp_prefix: str = "pagespub-build-"


@dataclass
class GitConfig:
    """Configuración de Git."""
    remote: str = "origin"
    content_branch: str = "source"
    deploy_branch: str = "gh-pages"
    commit_prefix: str = "Publishing:"


@dataclass
class PublishConfig:
    """Cómo se aplica el build sobre el branch de deploy."""
    overlay_mode: str = "overlay"
    preserve: list[str] = field(default_factory=lambda: ["CNAME", ".nojekyll"])
    include_untracked: bool = False
    lock_name: str = "pagespub.lock"


@dataclass
class AppConfig:
    """Configuración completa de la aplicación."""
    repo_path: str = "."
    site: SiteConfig = field(default_factory=SiteConfig)
    git: GitConfig = field(default_factory=GitConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)

    def validate(self) -> list[str]:
        """Lista de problemas encontrados (vacía si todo está bien)."""
        problemas = []
        if self.publish.overlay_mode not in OVERLAY_MODES:
            problemas.append(
                f"publish.overlay_mode inválido: {self.publish.overlay_mode!r} "
                f"(usa uno de: {', '.join(OVERLAY_MODES)})"
            )
        if self.git.content_branch == self.git.deploy_branch:
            problemas.append(
                "git.content_branch y git.deploy_branch no pueden ser el mismo branch"
            )
        if not isinstance(self.site.build_command, list):
            problemas.append("site.build_command debe ser una lista de argumentos")
        elif not self.site.build_command:
            problemas.append("site.build_command está vacío")
        elif not any("{destination}" in arg for arg in self.site.build_command):
            problemas.append("site.build_command debe incluir {destination}")
        if not _is_int(self.site.timeout):
            problemas.append(f"site.timeout debe ser un entero: {self.site.timeout!r}")
        elif self.site.timeout <= 0:
            problemas.append("site.timeout debe ser mayor que 0")
        for nombre, valor in (
            ("site.use_bundler", self.site.use_bundler),
            ("publish.include_untracked", self.publish.include_untracked),
        ):
            if not isinstance(valor, bool):
                problemas.append(f"{nombre} debe ser true o false: {valor!r}")
        if not isinstance(self.publish.preserve, list):
            problemas.append("publish.preserve debe ser una lista de rutas")
        if not self.repo_path or self.repo_path.startswith("$"):
            problemas.append("repo_path no configurado")
        return problemas


# ============================================================
# Funciones de carga
# ============================================================

def _resolve_env_vars(value: str) -> str:
    """
    Resuelve variables de entorno en un string.

    Ejemplo:
        "${BLOG_REPO_PATH}" → "/home/user/blog"

    Si la variable no existe se deja el placeholder tal cual.
    """
    patron = re.compile(r"\$\{(\w+)\}")

    def reemplazar(match: re.Match) -> str:
        return os.environ.get(match.group(1), match.group(0))

    return patron.sub(reemplazar, value)


def _resolve_env_recursive(data: Any) -> Any:
    """Resuelve ${VARIABLE} en toda la estructura del YAML."""
    if isinstance(data, str):
        return _resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_recursive(item) for item in data]
    return data


_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce(value: Any, tipo: str) -> Any:
    """
    Convierte strings a int/bool según el tipo del campo.

    Un ${VAR} resuelto siempre llega como string ("30", "true").
    Si no se puede convertir se deja tal cual y validate() lo reporta.
    """
    if not isinstance(value, str):
        return value
    texto = value.strip()
    if tipo == "int":
        try:
            return int(texto)
        except ValueError:
            return value
    if tipo == "bool":
        if texto.lower() in _TRUE:
            return True
        if texto.lower() in _FALSE:
            return False
    return value


def _dict_to_dataclass(data: Any, cls: type, seccion: str = "") -> Any:
    """
    Convierte un diccionario a una dataclass, ignorando keys desconocidas.

    Una sección vacía en el YAML (`site:` sin nada) llega como None
    y se trata como {}.

    Raises:
        ValueError: Si la sección no es un mapeo.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(
            f"La sección '{seccion or cls.__name__}' debe ser un mapeo clave: valor, "
            f"no {type(data).__name__}"
        )
    campos = {f.name: f.type for f in cls.__dataclass_fields__.values()}
    datos_filtrados = {
        k: _coerce(v, campos[k]) for k, v in data.items() if k in campos
    }
    return cls(**datos_filtrados)


def _find_config_dir() -> Path:
    """
    Encuentra el directorio donde está config.yaml.

    Busca hacia arriba desde el directorio actual; si no lo
    encuentra, usa el directorio actual.
    """
    current = Path.cwd()
    for parent in [current] + list(current.parents):
        if (parent / "config.yaml").exists():
            return parent
    return current


def load_config(config_path: Path | None = None) -> AppConfig:
    """
    Carga la configuración completa de pagespub.

    Pasos:
    1. Carga .env para tener las variables de entorno disponibles
    2. Lee config.yaml (o usa valores por defecto si no existe)
    3. Resuelve ${VARIABLES} en los valores del YAML
    4. Convierte cada sección a su dataclass correspondiente
    5. Aplica PAGESPUB_REPO_PATH si está definida

    Args:
        config_path: Ruta al config.yaml. Si es None, busca automáticamente.

    Returns:
        AppConfig lista para usar.

    Raises:
        ValueError: Si config.yaml no es un mapeo o una sección tampoco lo es.
        yaml.YAMLError: Si config.yaml no es YAML válido.
    """
    proyecto_dir = config_path.parent if config_path else _find_config_dir()
    env_path = proyecto_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    if config_path is None:
        config_path = proyecto_dir / "config.yaml"

    raw_config: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f) or {}
    if not isinstance(raw_config, dict):
        raise ValueError(f"{config_path} debe contener un mapeo clave: valor")

    config_resuelto = _resolve_env_recursive(raw_config)

    app_config = AppConfig(
        repo_path=str(config_resuelto.get("repo_path") or "."),
        site=_dict_to_dataclass(config_resuelto.get("site"), SiteConfig, "site"),
        git=_dict_to_dataclass(config_resuelto.get("git"), GitConfig, "git"),
        publish=_dict_to_dataclass(
            config_resuelto.get("publish"), PublishConfig, "publish"
        ),
    )

    # Rutas relativas en config.yaml son relativas al propio archivo
    repo = Path(app_config.repo_path)
    if config_path.exists() and not repo.is_absolute():
        if not app_config.repo_path.startswith("$"):
            app_config.repo_path = str((proyecto_dir / repo).resolve())

    env_repo = os.environ.get(REPO_PATH_ENV)
    if env_repo:
        app_config.repo_path = env_repo

    return app_config
