# dnsportal/routes/health.py

from fastapi import APIRouter

from dnsportal.core.config import settings

router = APIRouter()

@router.get("/health")
def health_check():
    """
    Liveness check. Reports the configured storage backend but never touches
    storage, Cloudflare or Razorpay.
    """
    return {"status": "ok", "storage_backend": settings.STORAGE_BACKEND}
