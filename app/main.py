# app/main.py
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.db.session import init_db
from app.errors import AppError
from app.logging_config import log_error_response, setup_logging
from app.routes import orders, users

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="Flight Agency API",
    version="1.0.0",
    description="Flight booking orders handled by travel agents",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f} ms")
    return response


def error_response(request: Request, status_code: int, message: str) -> JSONResponse:
    log_error_response(status_code, message, str(request.url.path), request.method)
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError):
    return error_response(request, exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        loc = ".".join(str(part) for part in first.get("loc", ()))
        message = f'"{loc}" {first.get("msg", "is invalid")}'
    return error_response(request, 400, message)


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return error_response(request, exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(request, 500, "An internal server error occurred.")


# Mount routes
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])


@app.get("/")
def root():
    return {"message": "Flight Agency API is running"}


@app.get("/health")
def health():
    return {"status": "ok"}


def run():
    import uvicorn
    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT)
