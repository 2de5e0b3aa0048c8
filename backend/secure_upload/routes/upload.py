"""
Ruta de subida de archivos: POST /upload.

Pipeline de una peticion:

    Rate limiter -> Upload Gate -> Sanitizacion del nombre
                 -> Escritura en disco -> Respuesta JSON

1. Rate limiting: dependencia enforce_upload_rate_limit (429 si se excede).
2. Content-Length: si el cuerpo declarado supera MAX_FILE_SIZE mas el
   margen del multipart, se rechaza antes de leerlo (400).
3. Un solo archivo, en el campo "file" (400 si falta, sobra o viene en
   otro campo).
4. validate_upload: extension, tipo MIME declarado y tamano (400).
5. sanitize_filename: nombre seguro con sufijo aleatorio.
6. LocalStorage.store: escritura por bloques con limite de tamano y
   re-chequeo final. Si algo falla, el archivo parcial se borra.

Todo el procesamiento (4 a 6) tiene un tiempo maximo de
UPLOAD_TIMEOUT_SECONDS; si se supera, se responde 500 con un mensaje
generico.

El formulario se lee dentro del endpoint (no con File()) para que un
campo "file" sin archivo o con nombre vacio sea MissingFile y no un
error de validacion de FastAPI.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import FormData, UploadFile

from secure_upload.config import settings
from secure_upload.errors import MissingFile, TooManyFiles, UnexpectedField, UploadTimeout
from secure_upload.limiter import enforce_upload_rate_limit
from secure_upload.models.schemas import ErrorResponse, UploadedFileInfo, UploadResponse
from secure_upload.services.sanitizer import sanitize_filename
from secure_upload.services.storage import LocalStorage, StoredFile, get_storage
from secure_upload.services.validator import size_error, sniff_content, validate_upload

logger = logging.getLogger(__name__)

router = APIRouter()

FILE_FIELD = "file"


async def enforce_body_size(request: Request) -> None:
    """
    Dependencia de FastAPI: corta antes de recibir un cuerpo demasiado grande.

    Solo aplica cuando el cliente envia Content-Length; un cuerpo chunked
    se limita despues, al escribirlo en disco.

    Raises:
        FileTooLarge: Si Content-Length > MAX_FILE_SIZE + MULTIPART_OVERHEAD.
    """
    declared = request.headers.get("content-length")
    if declared is None or not declared.isdigit():
        return
    if int(declared) > settings.MAX_FILE_SIZE + settings.MULTIPART_OVERHEAD:
        logger.info("Rejected upload body of %s bytes", declared)
        raise size_error()


def single_file(form: FormData) -> UploadFile:
    """
    Devuelve el unico archivo del formulario, en el campo "file".

    Raises:
        TooManyFiles: Si hay mas de un archivo.
        UnexpectedField: Si el archivo viene en otro campo.
        MissingFile: Si no hay archivo, si "file" es texto o si el nombre esta vacio.
    """
    fields = [key for key, value in form.multi_items() if isinstance(value, UploadFile)]
    if len(fields) > 1:
        raise TooManyFiles()
    if fields and fields[0] != FILE_FIELD:
        raise UnexpectedField(f"Unexpected file field '{fields[0]}'. Use '{FILE_FIELD}'")

    file = form.get(FILE_FIELD)
    if not isinstance(file, UploadFile) or not file.filename:
        raise MissingFile()
    return file


async def process_upload(file: UploadFile, storage: LocalStorage) -> StoredFile:
    """
    Valida, sanitiza y guarda un archivo.

    Raises:
        UploadError: Con el motivo del rechazo (extension, MIME, tamano, E/S).
    """
    result = validate_upload(file.filename, file.content_type, file.size)
    if not result.is_valid:
        logger.info("Rejected upload %r: %s", file.filename, result.error)
        raise result.rejection

    if settings.VERIFY_CONTENT_TYPE:
        head = await file.read(settings.CHUNK_SIZE)
        await file.seek(0)
        sniffed = sniff_content(head)
        if not sniffed.is_valid:
            raise sniffed.rejection

    stored_name = sanitize_filename(file.filename)
    return await storage.store(stored_name, file, result.mime_type)


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    dependencies=[Depends(enforce_upload_rate_limit), Depends(enforce_body_size)],
)
async def upload_file(request: Request, storage: LocalStorage = Depends(get_storage)):
    """
    Sube un archivo (multipart/form-data, campo "file").

    Retorna:
        UploadResponse: {"success": true, "file": {originalName, filename,
            size, mimetype, path}}

    Raises:
        RateLimited (429), MissingFile / TooManyFiles / UnexpectedField /
        UnsupportedExtension / UnsupportedMimeType / FileTooLarge (400),
        IOFailure / UploadTimeout (500).
    """
    async with request.form() as form:
        file = single_file(form)

        logger.info("Upload request received: %s", file.filename)
        try:
            stored = await asyncio.wait_for(
                process_upload(file, storage), timeout=settings.UPLOAD_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            logger.error("Upload timeout for %s", file.filename)
            raise UploadTimeout()

    logger.info("Upload successful: %s (%d bytes)", stored.stored_name, stored.size)
    return UploadResponse(
        file=UploadedFileInfo(
            original_name=file.filename,
            filename=stored.stored_name,
            size=stored.size,
            mimetype=stored.mime_type,
            path=stored.relative_path,
        )
    )
