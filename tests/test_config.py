"""
test_config.py — Tests para el módulo de configuración.

Verificamos que:
1. La configuración se carga correctamente desde config.yaml
2. Las variables de entorno se resuelven
3. Los valores por defecto funcionan cuando no hay archivo
4. validate() detecta configuraciones que romperían el publish
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from pagespub.config import (
    AppConfig,
    GitConfig,
    PublishConfig,
    SiteConfig,
    load_config,
    _resolve_env_vars,
    _resolve_env_recursive,
)


@pytest.fixture(autouse=True)
def _sin_repo_env(monkeypatch):
    monkeypatch.delenv("PAGESPUB_REPO_PATH", raising=False)


class TestResolveEnvVars:
    """Tests para la resolución de variables de entorno."""

    def test_resuelve_variable_existente(self):
        """Debe reemplazar ${VAR} con el valor de la variable de entorno."""
        with patch.dict("os.environ", {"MI_VAR": "hola"}):
            assert _resolve_env_vars("${MI_VAR}/path") == "hola/path"

    def test_mantiene_variable_inexistente(self):
        """Si la variable no existe, debe mantener el placeholder."""
        assert _resolve_env_vars("${NO_EXISTE_PAGESPUB}") == "${NO_EXISTE_PAGESPUB}"

    def test_resuelve_en_estructuras_anidadas(self):
        with patch.dict("os.environ", {"VAL": "ok"}):
            datos = {"nivel1": {"lista": ["${VAL}", "fijo"]}}
            resultado = _resolve_env_recursive(datos)
            assert resultado["nivel1"]["lista"] == ["ok", "fijo"]

    def test_no_modifica_numeros(self):
        assert _resolve_env_recursive(42) == 42


class TestAppConfig:
    """Tests para la configuración completa de la app."""

    def test_valores_por_defecto(self):
        """Los defaults reproducen el flujo source → gh-pages con jekyll."""
        config = AppConfig()
        assert config.git.remote == "origin"
        assert config.git.content_branch == "source"
        assert config.git.deploy_branch == "gh-pages"
        assert config.git.commit_prefix == "Publishing:"
        assert config.site.build_command[0] == "jekyll"
        assert config.publish.overlay_mode == "overlay"
        assert config.publish.include_untracked is False

    def test_defaults_son_validos(self):
        assert AppConfig().validate() == []

    def test_modo_de_overlay_invalido(self):
        config = AppConfig(publish=PublishConfig(overlay_mode="mirror"))
        assert any("overlay_mode" in p for p in config.validate())

    def test_mismo_branch_para_contenido_y_deploy(self):
        config = AppConfig(git=GitConfig(content_branch="main", deploy_branch="main"))
        assert any("mismo branch" in p for p in config.validate())

    def test_comando_sin_destino(self):
        config = AppConfig(site=SiteConfig(build_command=["jekyll", "build"]))
        assert any("{destination}" in p for p in config.validate())

    def test_repo_path_sin_resolver(self):
        config = AppConfig(repo_path="${BLOG_REPO_PATH}")
        assert any("repo_path" in p for p in config.validate())


class TestLoadConfig:
    """Tests para la función load_config."""

    def test_carga_sin_archivo(self, tmp_path):
        """Si no hay config.yaml, debe usar valores por defecto."""
        with patch("pagespub.config._find_config_dir", return_value=tmp_path):
            config = load_config()
        assert isinstance(config, AppConfig)
        assert config.git.deploy_branch == "gh-pages"

    def test_carga_desde_yaml(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "repo_path: blog\n"
            "site:\n"
            "  use_bundler: true\n"
            "git:\n"
            "  content_branch: main\n"
            "  clave_desconocida: 1\n"
            "publish:\n"
            "  overlay_mode: replace\n"
            "  preserve: [CNAME]\n",
            encoding="utf-8",
        )

        config = load_config(config_file)

        assert config.site.use_bundler is True
        assert config.git.content_branch == "main"
        assert config.git.deploy_branch == "gh-pages"
        assert config.publish.overlay_mode == "replace"
        assert config.publish.preserve == ["CNAME"]
        # relativo al directorio del config.yaml
        assert Path(config.repo_path) == (tmp_path / "blog").resolve()

    def test_variables_desde_dotenv(self, tmp_path, monkeypatch):
        monkeypatch.delenv("BLOG_TEST_PATH", raising=False)
        (tmp_path / ".env").write_text("BLOG_TEST_PATH=/srv/blog\n", encoding="utf-8")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("repo_path: ${BLOG_TEST_PATH}\n", encoding="utf-8")

        config = load_config(config_file)

        assert config.repo_path == "/srv/blog"

    def test_override_por_entorno(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("repo_path: /desde/yaml\n", encoding="utf-8")
        monkeypatch.setenv("PAGESPUB_REPO_PATH", "/desde/env")

        assert load_config(config_file).repo_path == "/desde/env"

    def test_yaml_vacio(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("", encoding="utf-8")
        config = load_config(config_file)
        assert config.publish.overlay_mode == "overlay"

    def test_seccion_vacia_usa_defaults(self, tmp_path):
        """`site:` sin nada debajo llega como None desde el YAML."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("site:\ngit:\n  remote: upstream\npublish:\n", encoding="utf-8")

        config = load_config(config_file)

        assert config.site == SiteConfig()
        assert config.publish == PublishConfig()
        assert config.git.remote == "upstream"
        assert config.validate() == []

    def test_seccion_que_no_es_mapeo(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("site: jekyll\n", encoding="utf-8")
        with pytest.raises(ValueError, match="site"):
            load_config(config_file)

    def test_yaml_que_no_es_mapeo(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- uno\n- dos\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(config_file)

    def test_timeout_y_bools_desde_variables(self, tmp_path, monkeypatch):
        """Un ${VAR} siempre se resuelve a string; se convierte al tipo del campo."""
        monkeypatch.setenv("PAGESPUB_TEST_TIMEOUT", "30")
        monkeypatch.setenv("PAGESPUB_TEST_BUNDLER", "yes")
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "site:\n"
            "  timeout: ${PAGESPUB_TEST_TIMEOUT}\n"
            "  use_bundler: ${PAGESPUB_TEST_BUNDLER}\n"
            "publish:\n"
            "  include_untracked: 'false'\n",
            encoding="utf-8",
        )

        config = load_config(config_file)

        assert config.site.timeout == 30
        assert config.site.use_bundler is True
        assert config.publish.include_untracked is False
        assert config.validate() == []

    def test_timeout_no_numerico_lo_reporta_validate(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("site:\n  timeout: diez\n", encoding="utf-8")

        config = load_config(config_file)

        assert config.site.timeout == "diez"
        assert any("site.timeout" in p for p in config.validate())

    def test_variable_sin_resolver_en_timeout(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PAGESPUB_NO_DEFINIDA", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text("site:\n  timeout: ${PAGESPUB_NO_DEFINIDA}\n", encoding="utf-8")

        problemas = load_config(config_file).validate()

        assert any("site.timeout" in p for p in problemas)
