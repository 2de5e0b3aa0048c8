"""
Rutas de lectura de archivos guardados.

    GET /uploads/{filename}  -> devuelve el archivo (200), 403 o 404
    GET /api/files           -> lista el directorio de subidas

El nombre pedido se busca exactamente como fue guardado (el que devolvio
POST /upload en "filename"). LocalStorage.resolve verifica que la ruta
canonica siga dentro del directorio de subidas antes de servir nada.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from secure_upload.models.schemas import ErrorResponse, FileEntry, FileListResponse
from secure_upload.services.storage import LocalStorage, get_storage

router = APIRouter()


@router.get(
    "/uploads/{filename}",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_uploaded_file(filename: str, storage: LocalStorage = Depends(get_storage)):
    """
    Sirve un archivo subido.

    Raises:
        PathTraversalAttempt (403), NotFound (404).
    """
    path = storage.resolve(filename)
    return FileResponse(path)


@router.get("/api/files", response_model=FileListResponse, responses={500: {"model": ErrorResponse}})
async def list_uploaded_files(storage: LocalStorage = Depends(get_storage)):
    files = storage.list_files()
    return FileListResponse(
        files=[FileEntry(filename=f.filename, size=f.size, uploaded=f.uploaded) for f in files]
    )
