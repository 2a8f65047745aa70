from fastapi import APIRouter

from jobhub.api.v1.jobs import router as jobs_router
from jobhub.api.v1.messages import router as messages_router
from jobhub.api.v1.payments import router as payments_router
from jobhub.api.v1.progress import router as progress_router
from jobhub.api.v1.quotes import router as quotes_router

v1_router = APIRouter()

v1_router.include_router(jobs_router)
v1_router.include_router(quotes_router)
v1_router.include_router(messages_router)
v1_router.include_router(progress_router)
v1_router.include_router(payments_router)
