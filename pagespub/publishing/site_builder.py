"""
site_builder.py — Construye el sitio estático con Jekyll.

El generador se trata como una caja negra: se le pasa un directorio
de destino y se espera que deje ahí el árbol de archivos del sitio.
Un exit code distinto de cero es un fallo de build.

El comando se arma desde config.yaml:

    site:
      build_command: ["jekyll", "build", "--destination", "{destination}"]
      use_bundler: true      # → bundle exec jekyll build ...

Uso:
    from pagespub.publishing.site_builder import SiteBuilder
    builder = SiteBuilder(repo_path, config.site)
    builder.build(Path("/tmp/pagespub-build-xyz"))
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

from pagespub.config import SiteConfig
from pagespub.utils.logger import get_logger

logger = get_logger("pagespub.site")


class BuildError(RuntimeError):
    """El generador del sitio falló o no se pudo ejecutar."""

    def __init__(self, message: str, returncode: int | None = None, output: str = ""):
        super().__init__(message)
        self.message = message
        self.returncode = returncode
        self.output = output


class SiteBuilder:
    """
    Ejecuta el generador del sitio dentro del repositorio.

    Args:
        repo_path: Directorio donde se ejecuta el build (raíz del sitio).
        config: Sección `site` de la configuración.
    """

    def __init__(self, repo_path: str | Path, config: SiteConfig | None = None):
        self._repo_path = Path(repo_path)
        self._config = config or SiteConfig()

    def command(self, destination: Path) -> list[str]:
        """Comando final con {destination} sustituido."""
        args = [
            arg.replace("{destination}", str(destination))
            for arg in self._config.build_command
        ]
        if self._config.use_bundler:
            args = ["bundle", "exec"] + args
        return args

    def is_available(self) -> bool:
        """True si el ejecutable del build está en PATH."""
        executable = self.command(Path("."))[0]
        return shutil.which(executable) is not None

    def build(self, destination: Path) -> str:
        """
        Renderiza el sitio en `destination`.

        Returns:
            Salida combinada (stdout + stderr) del generador.

        Raises:
            BuildError: Si el comando no existe, excede el timeout
                o termina con exit code distinto de cero.
        """
        args = self.command(destination)
        logger.debug(f"build: {' '.join(args)} (cwd={self._repo_path})")

        try:
            result = subprocess.run(
                args,
                cwd=self._repo_path,
                capture_output=True,
                text=True,
                timeout=self._config.timeout,
            )
        except FileNotFoundError as e:
            raise BuildError(f"{args[0]} no encontrado en PATH") from e
        except subprocess.TimeoutExpired as e:
            raise BuildError(
                f"Build timeout ({self._config.timeout}s): {' '.join(args)}"
            ) from e

        output = result.stdout
        if result.stderr:
            output += result.stderr

        if result.returncode != 0:
            raise BuildError(
                f"{' '.join(args)} terminó con exit code {result.returncode}",
                returncode=result.returncode,
                output=output,
            )

        return output
