"""
conftest.py — Fixtures compartidas: repos Git desechables.

`site_repo` arma el escenario real de un blog Jekyll:

    tmp/remote.git   → remoto bare ("origin")
    tmp/site         → clon de trabajo, con dos branches:
        source   → _config.yml, index.md            (contenido)
        gh-pages → index.html, CNAME, old-post.html (sitio generado)

El clon queda en `source`, limpio y sincronizado con origin.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

import pytest
from git import Repo

from pagespub.config import AppConfig
from pagespub.publishing.site_builder import BuildError


def _configure(repo: Repo) -> None:
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test Author")
        writer.set_value("user", "email", "test@example.com")
        writer.set_value("commit", "gpgsign", "false")


@dataclass
class SiteRepo:
    """Clon de trabajo + remoto bare."""
    path: Path
    repo: Repo
    remote_path: Path

    @property
    def remote(self) -> Repo:
        return Repo(self.remote_path)

    def write(self, relativa: str, contenido: str) -> Path:
        ruta = self.path / relativa
        ruta.parent.mkdir(parents=True, exist_ok=True)
        ruta.write_text(contenido, encoding="utf-8")
        return ruta

    def commit(self, relativa: str, contenido: str, mensaje: str) -> str:
        self.write(relativa, contenido)
        self.repo.git.add(relativa)
        self.repo.git.commit("-m", mensaje)
        return self.repo.head.commit.hexsha

    def remote_sha(self, branch: str) -> str:
        return self.remote.commit(branch).hexsha

    def remote_file(self, branch: str, relativa: str) -> str:
        return self.remote.git.show(f"{branch}:{relativa}")

    def remote_files(self, branch: str) -> set[str]:
        salida = self.remote.git.ls_tree("-r", "--name-only", branch)
        return set(salida.splitlines())

    def config(self, **publish) -> AppConfig:
        cfg = AppConfig(repo_path=str(self.path))
        for clave, valor in publish.items():
            setattr(cfg.publish, clave, valor)
        return cfg


@pytest.fixture
def site_repo(tmp_path) -> SiteRepo:
    """Blog con branches source y gh-pages ya publicados en origin."""
    if shutil.which("git") is None:
        pytest.skip("git no está instalado")

    remote_path = tmp_path / "remote.git"
    Repo.init(remote_path, bare=True)

    work_path = tmp_path / "site"
    repo = Repo.init(work_path)
    _configure(repo)
    site = SiteRepo(path=work_path, repo=repo, remote_path=remote_path)

    repo.git.checkout("-b", "source")
    site.write("_config.yml", "title: Test Blog\n")
    site.write("index.md", "# Hola\n")
    repo.git.add("--all")
    repo.git.commit("-m", "Initial content")
    repo.create_remote("origin", str(remote_path))
    repo.git.push("-u", "origin", "source")

    repo.git.checkout("--orphan", "gh-pages")
    repo.git.rm("-rf", "--quiet", ".")
    site.write("index.html", "<h1>old</h1>\n")
    site.write("CNAME", "blog.example.com\n")
    site.write("old-post.html", "<p>removed post</p>\n")
    repo.git.add("--all")
    repo.git.commit("-m", "Initial pages")
    repo.git.push("-u", "origin", "gh-pages")

    repo.git.checkout("source")
    return site


class FakeBuilder:
    """Generador falso: escribe `files` en el destino o falla."""

    def __init__(self, files: dict[str, str] | None = None, fail: bool = False):
        self.files = files if files is not None else {
            "index.html": "<h1>new</h1>\n",
            "posts/add-post.html": "<p>Add post</p>\n",
        }
        self.fail = fail
        self.destinations: list[Path] = []

    def build(self, destination: Path) -> str:
        self.destinations.append(destination)
        if self.fail:
            raise BuildError("jekyll build terminó con exit code 1", returncode=1)
        for relativa, contenido in self.files.items():
            ruta = destination / relativa
            ruta.parent.mkdir(parents=True, exist_ok=True)
            ruta.write_text(contenido, encoding="utf-8")
        return f"{len(self.files)} archivos generados"


@pytest.fixture
def fake_builder() -> FakeBuilder:
    return FakeBuilder()


@pytest.fixture
def builder_factory():
    """Para tests que necesitan un FakeBuilder con otros archivos o que falle."""
    return FakeBuilder
