"""
__main__.py — Permite ejecutar pagespub como módulo.

    python -m pagespub publish
"""

from pagespub.cli import main

if __name__ == "__main__":
    main()
