# backend/main.py
import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from config import settings
from database import init_db
from schemas.common import ErrorResponse
from utils.errors import ServiceError

# Router imports
from routes.auth import router as auth_router
from routes.logs import router as logs_router
from routes.categories import router as categories_router
from routes.products import router as products_router
from routes.reviews import router as reviews_router
from routes.cart import router as cart_router
from routes.orders import router as orders_router
from routes.payments import router as payments_router
from routes.notifications import router as notifications_router
from routes.testimonials import router as testimonials_router
from routes.contact import router as contact_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialisation
init_db()

app = FastAPI(title="Storefront API", version="1.0.0")

# Uploads: make sure the directory exists before mounting it
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# CORS configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- error envelope ----

def _error(status_code: int, message: str, errors=None, headers=None) -> JSONResponse:
    body = ErrorResponse(message=message, errors=errors)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message, exc.errors)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        errors.setdefault(field, []).append(err.get("msg", "Invalid value"))
    return _error(422, "Validation Error", errors)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal Server Error")


# Router registration
app.include_router(auth_router)
app.include_router(logs_router)
app.include_router(categories_router)
app.include_router(products_router)
app.include_router(reviews_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(notifications_router)
app.include_router(testimonials_router)
app.include_router(contact_router)


@app.get("/")
def read_root():
    return {"message": "Storefront API is running"}
