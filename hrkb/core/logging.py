"""Configuration des logs structurés (structlog).

Objectif du module
------------------
- Console lisible en développement (`APP_DEBUG=true`), une ligne JSON par événement sinon.
- Fusion du contexte de requête (`request_id`) lié par le middleware dans chaque événement.
- Les événements du moteur de recherche et de la maintenance des embeddings passent par ici;
  les clés et identifiants du fournisseur ne sont jamais journalisés.
"""

import logging
import sys

import structlog


def setup_logging(debug: bool = True) -> None:
    """Configure structlog et le logging standard (utilisé par les gestionnaires d'erreurs API).

    Args:
        debug: Niveau DEBUG et rendu console si vrai; niveau INFO et rendu JSON sinon.
    """
    level = logging.DEBUG if debug else logging.INFO
    renderer = structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer()
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="ISO", utc=True),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
