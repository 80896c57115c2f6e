"""
Script de serveur de développement.

Lance l'application avec les paramètres `APP_HOST`/`APP_PORT`; sans `REDIS_URL`, le stockage est en
mémoire (aucune dépendance externe).
"""

import os

# Defaults locaux AVANT l'import de l'application
os.environ.setdefault("APP_ENV", "dev")

import uvicorn

from workoutsync.app.main import app
from workoutsync.core.container import container


def main():
    """
    Point d'entrée principal du serveur de développement.

    `PORT` (si défini) prend le pas sur `APP_PORT`.
    """
    settings = container.settings
    port = int(os.environ.get("PORT", settings.APP_PORT))
    uvicorn.run(app, host=settings.APP_HOST, port=port, reload=False)


if __name__ == "__main__":
    main()
