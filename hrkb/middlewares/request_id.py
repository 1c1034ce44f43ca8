"""Middleware Starlette pour ajouter et propager un identifiant de requête.

L'identifiant (en-tête entrant ou UUID généré) est lié au contexte structlog le temps de la requête:
chaque événement journalisé pendant une recherche ou une écriture porte donc `request_id`.
"""

from collections.abc import Callable
from uuid import uuid4

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware pour ajouter et propager un identifiant de requête."""

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID") -> None:
        """Initialise le middleware avec le nom d'en-tête spécifié.

        Args:
            app: Application ASGI à wrapper.
            header_name: Nom de l'en-tête HTTP pour l'ID de requête.
        """
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next: Callable):
        """Lie l'identifiant au contexte de log puis le renvoie dans la réponse."""
        request_id = request.headers.get(self.header_name) or str(uuid4())
        request.state.trace_id = request_id
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
        response.headers[self.header_name] = request_id
        return response
