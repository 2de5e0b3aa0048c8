"""
Esquemas (Pydantic) de las respuestas de la API.

Todas las respuestas llevan el campo "success". Los nombres de campo
siguen el formato camelCase que espera el cliente web
(originalName, mimetype), por eso se usan alias.

    POST /upload        -> UploadResponse
    GET  /api/files     -> FileListResponse
    cualquier error     -> ErrorResponse
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UploadedFileInfo(BaseModel):
    """
    Datos del archivo aceptado.

    Atributos:
        original_name (str): Nombre enviado por el cliente (solo informativo).
        filename (str): Nombre con el que quedo guardado.
        size (int): Bytes escritos en disco.
        mimetype (str): Tipo MIME declarado y validado.
        path (str): Ruta relativa para descargarlo, "/uploads/<filename>".
    """
    model_config = ConfigDict(populate_by_name=True)

    original_name: str = Field(alias="originalName")
    filename: str
    size: int
    mimetype: str
    path: str


class UploadResponse(BaseModel):
    success: bool = True
    message: str = "File uploaded successfully"
    file: UploadedFileInfo


class FileEntry(BaseModel):
    filename: str
    size: int
    uploaded: datetime


class FileListResponse(BaseModel):
    success: bool = True
    files: list[FileEntry]


class ErrorResponse(BaseModel):
    """
    Formato uniforme de error para todos los endpoints.

    Ejemplos de "error":
        "File too large. Maximum size: 5 MB"
        "Too many upload attempts. Please try again later."
    """
    success: bool = False
    error: str
