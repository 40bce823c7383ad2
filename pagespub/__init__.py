"""
pagespub — Publica un sitio Jekyll desde el branch de contenido a gh-pages.

Estructura:
- config.py    → Carga de config.yaml + .env
- cli.py       → Comandos CLI (publish, config, health)
- publishing/  → Git, build del sitio, overlay y el flujo de publish
- utils/       → Logging

Uso:
    python -m pagespub
    python -m pagespub publish --dry-run
    python -m pagespub health
"""

__version__ = "1.0.0"
