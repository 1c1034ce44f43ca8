"""Constantes partagées pour éviter les valeurs magiques dans le code.

Codes HTTP, rôles et valeurs par défaut du moteur de recherche et du versionnage.
"""

# Codes de statut HTTP courants
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_UNPROCESSABLE_ENTITY = 422
HTTP_INTERNAL_SERVER_ERROR = 500
HTTP_BAD_GATEWAY = 502
HTTP_SERVICE_UNAVAILABLE = 503

# Rôles
ROLE_VIEWER = "viewer"
ROLE_HR_STAFF = "hr_staff"
ROLE_ADMIN = "admin"
EDITOR_ROLES = (ROLE_HR_STAFF, ROLE_ADMIN)

# Entités indexées
ENTITY_QNA = "qna"
ENTITY_MANUAL = "manual"

# Recherche hybride
SIMILARITY_THRESHOLD = 0.3
CANDIDATE_LIMIT = 50
VECTOR_WEIGHT = 0.7
KEYWORD_WEIGHT = 0.3
EMBEDDING_DIMENSIONS = 3072

# Versionnage des manuels
INITIAL_VERSION = (1, 0)
CHANGE_LOG_CREATED = "Initial creation"
CHANGE_LOG_UPDATED = "Updated manual"

# Statistiques admin
RECENT_ACTIVITY_DAYS = 7
RECENT_ACTIVITY_LIMIT = 10
