"""
test_overlay.py — Tests para la copia del build sobre gh-pages.
"""

from __future__ import annotations

import pytest

from pagespub.publishing.overlay import overlay_build


@pytest.fixture
def build_dir(tmp_path):
    """Build con un index, un post anidado y assets."""
    build = tmp_path / "build"
    (build / "posts").mkdir(parents=True)
    (build / "assets" / "css").mkdir(parents=True)
    (build / "index.html").write_text("<h1>new</h1>", encoding="utf-8")
    (build / "posts" / "hola.html").write_text("<p>hola</p>", encoding="utf-8")
    (build / "assets" / "css" / "main.css").write_text("body{}", encoding="utf-8")
    return build


@pytest.fixture
def worktree(tmp_path):
    """Working tree de gh-pages con contenido previo."""
    tree = tmp_path / "tree"
    (tree / ".git").mkdir(parents=True)
    (tree / ".git" / "HEAD").write_text("ref: refs/heads/gh-pages\n", encoding="utf-8")
    (tree / "index.html").write_text("<h1>old</h1>", encoding="utf-8")
    (tree / "CNAME").write_text("blog.example.com", encoding="utf-8")
    (tree / "viejo").mkdir()
    (tree / "viejo" / "post.html").write_text("<p>viejo</p>", encoding="utf-8")
    return tree


class TestOverlayMode:
    def test_copia_todo_lo_generado(self, build_dir, worktree):
        result = overlay_build(build_dir, worktree)

        assert sorted(result.copied) == [
            "assets/css/main.css", "index.html", "posts/hola.html",
        ]
        assert (worktree / "index.html").read_text(encoding="utf-8") == "<h1>new</h1>"
        assert (worktree / "posts" / "hola.html").exists()

    def test_es_aditivo(self, build_dir, worktree):
        """Lo que el build no genera se queda igual."""
        result = overlay_build(build_dir, worktree)

        assert result.removed == []
        assert (worktree / "viejo" / "post.html").read_text(encoding="utf-8") == "<p>viejo</p>"
        assert (worktree / "CNAME").exists()

    def test_ignora_tracked_en_modo_overlay(self, build_dir, worktree):
        result = overlay_build(build_dir, worktree, tracked=["viejo/post.html"])
        assert result.removed == []
        assert (worktree / "viejo" / "post.html").exists()

    def test_no_copia_git_del_build(self, build_dir, worktree):
        (build_dir / ".git").mkdir()
        (build_dir / ".git" / "HEAD").write_text("basura", encoding="utf-8")

        overlay_build(build_dir, worktree)

        assert (worktree / ".git" / "HEAD").read_text(encoding="utf-8").startswith("ref:")

    def test_build_vacio(self, tmp_path, worktree):
        vacio = tmp_path / "vacio"
        vacio.mkdir()
        result = overlay_build(vacio, worktree)
        assert result.copied == []


class TestReplaceMode:
    def test_borra_lo_que_ya_no_se_genera(self, build_dir, worktree):
        tracked = ["index.html", "CNAME", "viejo/post.html"]

        result = overlay_build(
            build_dir, worktree, mode="replace", tracked=tracked, preserve=["CNAME"]
        )

        assert result.removed == ["viejo/post.html"]
        assert not (worktree / "viejo").exists()
        assert (worktree / "CNAME").exists()
        assert (worktree / ".git" / "HEAD").exists()

    def test_preserve_de_directorio(self, build_dir, worktree):
        result = overlay_build(
            build_dir, worktree, mode="replace",
            tracked=["viejo/post.html"], preserve=["viejo/"],
        )
        assert result.removed == []
        assert (worktree / "viejo" / "post.html").exists()

    def test_solo_borra_archivos_versionados(self, build_dir, worktree):
        (worktree / "local.txt").write_text("no versionado", encoding="utf-8")

        overlay_build(build_dir, worktree, mode="replace", tracked=["index.html"])

        assert (worktree / "local.txt").exists()


def test_modo_invalido(build_dir, worktree):
    with pytest.raises(ValueError):
        overlay_build(build_dir, worktree, mode="mirror")
