# API v1 routes
from fastapi import APIRouter

from docvault.api.v1 import auth, documents, projects, users

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(users.router, prefix="/users", tags=["Accounts"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(documents.router, prefix="/documents", tags=["Documents"])
