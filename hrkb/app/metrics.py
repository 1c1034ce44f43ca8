"""
Métriques Prometheus pour l'application.

Ce module définit les métriques HTTP, de recherche hybride et de maintenance des embeddings, ainsi
que la route `/metrics` et le middleware de mesure.
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter(tags=["metrics"])

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Recherche hybride
SEARCH_REQUESTS = Counter(
    "kb_search_requests_total",
    "Total knowledge-base searches",
    ["entity", "mode"],
)
SEARCH_LATENCY = Histogram(
    "kb_search_latency_seconds",
    "Latency of knowledge-base searches",
    ["entity", "mode"],
)
SEARCH_CANDIDATES = Histogram(
    "kb_search_candidates",
    "Candidates returned per retrieval path",
    ["entity", "path"],
    buckets=[0, 1, 5, 10, 20, 30, 40, 50, 75, 100],
)

# Fournisseur d'embeddings
EMBEDDING_REQUESTS = Counter(
    "kb_embedding_requests_total",
    "Embedding provider calls",
    ["outcome"],
)
EMBEDDING_LATENCY = Histogram(
    "kb_embedding_latency_seconds",
    "Latency of embedding provider calls",
)
EMBEDDING_BACKFILL_ITEMS = Counter(
    "kb_embedding_backfill_items_total",
    "Entries processed by embedding backfill",
    ["entity", "outcome"],
)


@metrics_router.get("/metrics")
def metrics():
    """
    Expose les métriques Prometheus au format texte.

    Returns:
        Response: Réponse HTTP contenant les métriques au format Prometheus.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware Prometheus pour mesurer les métriques HTTP.

    Collecte le comptage des requêtes et la latence par route. Le libellé de route utilise le
    gabarit (`/api/qna/{entry_id}`) quand il est connu pour borner la cardinalité.
    """

    async def dispatch(self, request: Request, call_next):
        """
        Traite une requête HTTP et collecte les métriques.

        Args:
            request: Requête HTTP entrante.
            call_next: Fonction pour appeler le middleware suivant.

        Returns:
            Response: Réponse HTTP avec métriques collectées.
        """
        start = time.perf_counter()
        response: Response = await call_next(request)
        route_obj = request.scope.get("route")
        route = getattr(route_obj, "path", None) or request.scope.get("path", "unknown")
        REQUEST_COUNT.labels(request.method, route, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route).observe(time.perf_counter() - start)
        return response
