"""API v1 router initialization."""
from fastapi import APIRouter

from .groups import router as groups_router
from .subjects import router as subjects_router
from .verification import router as verification_router

# Create v1 router
router = APIRouter()

router.include_router(verification_router, prefix="/verification")
router.include_router(subjects_router, prefix="/subjects")
router.include_router(groups_router, prefix="/groups")
