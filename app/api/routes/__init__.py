"""
API router aggregating all route modules.
"""

from fastapi import APIRouter

from app.api.routes import health, auth, documents, users, search

router = APIRouter()

# Include all route modules
router.include_router(health.router, prefix="/health", tags=["Health"])
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(documents.router, prefix="/documents", tags=["Documents"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(search.router, prefix="/search", tags=["Search"])
