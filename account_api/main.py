import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware import Middleware

from account_api.core.config import settings
from .core.errors import AccountError, account_error_handler, unhandled_error_handler
from .database import engine, Base, SessionLocal
from .deletion import DeletionWorker
from .routers import auth, users

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Startup: Database tables checked/created")

    worker_task = None
    if settings.DELETION_WORKER_ENABLED:
        worker_task = asyncio.create_task(DeletionWorker(SessionLocal).run_forever())
    yield
    if worker_task is not None:
        worker_task.cancel()
        with suppress(asyncio.CancelledError):
            await worker_task
        logger.info("Shutdown: Deletion worker stopped")


middleware = [
    Middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS),
    Middleware(CORSMiddleware,
               allow_origins=settings.CORS_ORIGINS,
               allow_credentials=True,
               allow_methods=["*"],
               allow_headers=["*"]),

    Middleware(GZipMiddleware, minimum_size=1000)
]

app = FastAPI(
    title="Account Api",
    description="User accounts: registration, sessions and delayed deletion",
    version="1.0.0",
    lifespan=lifespan,
    middleware=middleware
)

app.add_exception_handler(AccountError, account_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    return response


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


app.include_router(auth.router, tags=["Authentication"])
app.include_router(users.router, tags=["Users"])


@app.get("/")
def health_check():
    return {"status": "ok", "message": "Nice and Healthy"}
