"""
Application principale FastAPI.

Ce module assemble tous les composants de l'application : middlewares, routes, gestion des erreurs
et métriques de la base de connaissances RH.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, métriques, timing)
- Monter les routers (santé, Q&A, manuels, catégories, administration, métriques)
"""

from __future__ import annotations

from fastapi import FastAPI

from hrkb.api.errors import register_error_handlers
from hrkb.api.routes_admin import router as admin_router
from hrkb.api.routes_categories import router as categories_router
from hrkb.api.routes_health import router as health_router
from hrkb.api.routes_manuals import router as manuals_router
from hrkb.api.routes_qna import router as qna_router
from hrkb.app.metrics import PrometheusMiddleware, metrics_router
from hrkb.core.container import container
from hrkb.core.logging import setup_logging
from hrkb.middlewares.request_id import RequestIDMiddleware
from hrkb.middlewares.timing import TimingMiddleware


def create_app() -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Lit les paramètres d'exécution
    - Ajoute les middlewares utiles au debug/traçabilité
    - Publie les routes et les gestionnaires d'erreurs
    """
    setup_logging(container.settings.APP_DEBUG)
    settings = container.settings
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(TimingMiddleware)
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(qna_router)
    app.include_router(manuals_router)
    app.include_router(categories_router)
    app.include_router(admin_router)
    app.include_router(metrics_router)
    return app


app = create_app()
