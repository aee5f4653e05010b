from fastapi import APIRouter

from ..config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {
        "status": "ok",
        "index": settings.pinecone_index_name or None,
        "rate_limiting": settings.rate_limiting_enabled,
    }
