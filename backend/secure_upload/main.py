"""
Punto de entrada de la aplicacion FastAPI.

Aqui se:
1. Crea la instancia de FastAPI.
2. Configura logging, CORS y el rate limiter (app.state.rate_limiter).
3. Registra los handlers que convierten cualquier error en
   {"success": false, "error": "..."}.
4. Registra las rutas.

Estructura:
    main.py
        +-- routes/
        |    +-- upload.py     POST /upload
        |    +-- files.py      GET /uploads/{filename}, GET /api/files
        +-- services/
        |    +-- validator.py  extension, MIME y tamano
        |    +-- sanitizer.py  nombres seguros
        |    +-- storage.py    disco local
        +-- models/schemas.py
        +-- config.py
        +-- errors.py
        +-- limiter.py

Para levantar el servidor:
    uvicorn secure_upload.main:app --port 3000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from secure_upload.config import settings
from secure_upload.errors import UploadError
from secure_upload.limiter import RateLimiter
from secure_upload.routes.files import router as files_router
from secure_upload.routes.upload import router as upload_router
from secure_upload.services.storage import LocalStorage

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.storage = LocalStorage(settings.UPLOAD_DIR)
    logger.info("Upload directory: %s", settings.UPLOAD_DIR)
    logger.info("Allowed file types: %s", ", ".join(settings.ALLOWED_EXTENSIONS))
    logger.info("Maximum file size: %g MB", settings.max_file_size_mb)
    yield


app = FastAPI(title="Secure File Upload", lifespan=lifespan)

# Los endpoints lo obtienen con la dependencia get_rate_limiter().
app.state.rate_limiter = RateLimiter.from_settings()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    return error_response(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, "Route not found")
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    message = first.get("msg", "Invalid request")
    return error_response(400, f"Upload error: {message}")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # El detalle queda solo en el log del servidor.
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


app.include_router(upload_router)
app.include_router(files_router)


def run() -> None:
    """Levanta el servidor con uvicorn (comando `secure-upload`)."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=3000)
