"""
Modulo de validacion de archivos subidos (Upload Gate).

Antes de escribir nada en disco, cada archivo pasa por tres controles en
orden; el primero que falla corta la cadena:

    1. Extension: el sufijo del nombre ORIGINAL (en minusculas) debe estar
       en settings.ALLOWED_EXTENSIONS.
    2. Tipo MIME declarado: el Content-Type de la parte multipart debe
       estar en settings.ALLOWED_MIME_TYPES.
    3. Tamano: si ya se conoce, no puede superar settings.MAX_FILE_SIZE.
       El tamano se vuelve a controlar mientras se escribe a disco y al
       terminar (ver services/storage.py).

Limitacion conocida: el tipo MIME declarado lo elige el cliente y no se
compara con el contenido. Con VERIFY_CONTENT_TYPE activo se agrega un
cuarto control con python-magic sobre los primeros bytes (sniff_content).

El resultado es un ValidationResult en vez de una excepcion, asi el
endpoint decide que hacer con el rechazo.
"""

import logging
from dataclasses import dataclass
from pathlib import PurePath

from secure_upload.config import settings
from secure_upload.errors import FileTooLarge, UnsupportedExtension, UnsupportedMimeType, UploadError

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """
    Resultado de la validacion de un archivo.

    Atributos:
        is_valid (bool): True si el archivo paso todos los controles.
        mime_type (str): Tipo MIME normalizado (sin parametros).
        rejection (UploadError | None): El error a devolver si is_valid es False.
    """
    is_valid: bool
    mime_type: str = ""
    rejection: UploadError | None = None

    @property
    def error(self) -> str:
        return self.rejection.message if self.rejection else ""


def normalize_mime_type(content_type: str | None) -> str:
    """'Text/Plain; charset=utf-8' -> 'text/plain'."""
    if not content_type:
        return ""
    return content_type.split(";")[0].strip().lower()


def file_extension(filename: str) -> str:
    # PurePath("a/b.tar.GZ").suffix -> ".GZ"
    return PurePath(filename).suffix.lower()


def size_error() -> FileTooLarge:
    return FileTooLarge(f"File too large. Maximum size: {settings.max_file_size_mb:g} MB")


def validate_upload(filename: str, content_type: str | None, size: int | None = None) -> ValidationResult:
    """
    Aplica los controles de extension, tipo MIME y tamano.

    Parametros:
        filename (str): Nombre original enviado por el cliente.
        content_type (str | None): Tipo MIME declarado en la parte multipart.
        size (int | None): Tamano en bytes si ya se conoce. None omite el control.

    Retorna:
        ValidationResult

    Ejemplos:
        >>> validate_upload("report.pdf", "application/pdf", 1024).is_valid
        True
        >>> validate_upload("script.sh", "text/plain").error
        'File type not allowed. Allowed types: .jpg, .jpeg, .png, .gif, .pdf, .txt'
    """
    if file_extension(filename) not in settings.ALLOWED_EXTENSIONS:
        return ValidationResult(
            is_valid=False,
            rejection=UnsupportedExtension(
                f"File type not allowed. Allowed types: {', '.join(settings.ALLOWED_EXTENSIONS)}"
            ),
        )

    mime_type = normalize_mime_type(content_type)
    if mime_type not in settings.ALLOWED_MIME_TYPES:
        return ValidationResult(
            is_valid=False,
            mime_type=mime_type,
            rejection=UnsupportedMimeType(
                f"MIME type not allowed. Allowed types: {', '.join(settings.ALLOWED_MIME_TYPES)}"
            ),
        )

    if size is not None and size > settings.MAX_FILE_SIZE:
        return ValidationResult(is_valid=False, mime_type=mime_type, rejection=size_error())

    return ValidationResult(is_valid=True, mime_type=mime_type)


def sniff_content(first_chunk: bytes) -> ValidationResult:
    """
    Detecta el tipo real del archivo por sus magic bytes.

    Solo se llama con settings.VERIFY_CONTENT_TYPE activo. python-magic
    necesita la libreria del sistema libmagic, por eso se importa aqui y
    no al cargar el modulo.
    """
    import magic

    detected = magic.from_buffer(first_chunk, mime=True)
    if detected not in settings.ALLOWED_MIME_TYPES:
        logger.warning("Rejected upload with detected content type %s", detected)
        return ValidationResult(
            is_valid=False,
            mime_type=detected,
            rejection=UnsupportedMimeType(f"File content type '{detected}' is not allowed"),
        )
    return ValidationResult(is_valid=True, mime_type=detected)
