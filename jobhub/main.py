from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobhub.api.middleware import RequestLogMiddleware
from jobhub.api.v1.router import v1_router
from jobhub.api.v1.websocket import router as ws_router
from jobhub.api.ws import manager
from jobhub.common.exceptions import JobHubException
from jobhub.common.logging import get_logger, setup_logging
from jobhub.config import settings

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("JobHub API starting (env=%s)", settings.APP_ENV)
    yield


app = FastAPI(
    title="JobHub API",
    description="Job lifecycle service for a customer/vendor marketplace",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
origins = settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS != "*" else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(JobHubException)
async def jobhub_exception_handler(request: Request, exc: JobHubException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=exc.headers,
    )


# API routes
app.include_router(v1_router, prefix="/api/v1")
app.include_router(ws_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "jobhub",
        "version": "1.0.0",
        "env": settings.APP_ENV,
        "ws_connections": manager.active_connections,
    }
