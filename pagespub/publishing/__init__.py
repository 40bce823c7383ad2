"""
publishing/ — Todo lo relacionado con publicar el sitio.

Módulos:
- git_ops.py      → Operaciones Git (status, push, checkout, pull, commit)
- site_builder.py → Ejecuta el generador (jekyll build)
- overlay.py      → Copia el build sobre el branch de deploy
- lock.py         → Un solo publish a la vez
- publisher.py    → El flujo completo, paso por paso
"""
