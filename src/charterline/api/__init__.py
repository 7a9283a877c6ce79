# Charterline HTTP API layer
# Created: 2026-10-08
#
# Versioned REST endpoints for the booking site and the operator dashboard,
# mounted at /api/v1/.
