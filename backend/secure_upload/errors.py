"""
Errores del pipeline de subida y recuperacion de archivos.

Cada tipo de rechazo es una subclase de UploadError con su codigo HTTP.
Los handlers registrados en main.py convierten cualquier UploadError en
la respuesta JSON uniforme:

    {"success": false, "error": "<mensaje>"}

Ningun error se reintenta: el cliente debe volver a enviar la peticion.
"""


class UploadError(Exception):
    """
    Error base con codigo HTTP y mensaje apto para el cliente.

    Atributos:
        status_code (int): Codigo HTTP de la respuesta.
        message (str): Texto que se devuelve en el campo "error".
    """

    status_code: int = 400
    default_message: str = "Upload failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RateLimited(UploadError):
    status_code = 429
    default_message = "Too many upload attempts. Please try again later."


class UnsupportedExtension(UploadError):
    default_message = "File extension is not allowed"


class UnsupportedMimeType(UploadError):
    default_message = "MIME type is not allowed"


class FileTooLarge(UploadError):
    default_message = "File is too large"


class MissingFile(UploadError):
    default_message = "No file uploaded"


class TooManyFiles(UploadError):
    default_message = "Only one file per request is allowed"


class UnexpectedField(UploadError):
    default_message = "Unexpected file field"


class PathTraversalAttempt(UploadError):
    status_code = 403
    default_message = "Access denied"


class NotFound(UploadError):
    status_code = 404
    default_message = "File not found"


class IOFailure(UploadError):
    status_code = 500
    default_message = "Error while storing the file"


class UploadTimeout(UploadError):
    status_code = 500
    default_message = "Upload timeout: the request took too long"
