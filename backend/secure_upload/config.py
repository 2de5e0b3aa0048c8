"""
Modulo de configuracion centralizada del servicio de subida de archivos.

Todas las constantes del pipeline de subida viven aqui: directorio de
almacenamiento, listas blancas de extensiones y tipos MIME, limite de
tamano, parametros del rate limiter y del timeout por peticion.

Cada valor se puede sobreescribir con una variable de entorno, asi la
misma aplicacion corre en desarrollo, en un contenedor o detras de un
reverse proxy sin tocar el codigo.

La instancia `settings` se crea una sola vez al importar este modulo.
Los demas modulos leen sus atributos en el momento de usarlos (no al
importar), por eso los tests pueden cambiarlos con monkeypatch.
"""

import os


def _env_bool(name: str, default: bool) -> bool:
    """Interpreta una variable de entorno como booleano ("1", "true", "yes", "on")."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Configuracion de la aplicacion.

    Una clase simple con atributos leidos de os.getenv. En los tests se
    modifican atributos de la instancia `settings` directamente.
    """

    # ---------- Almacenamiento ----------

    # Directorio plano donde se guardan los archivos aceptados.
    # No hay indice ni manifiesto: el listado del directorio es la fuente
    # de verdad para GET /api/files.
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")

    # Tamano de los bloques al escribir en disco (64 KB).
    CHUNK_SIZE: int = int(os.getenv("UPLOAD_CHUNK_SIZE", 64 * 1024))

    # ---------- Limites de archivos ----------

    # 5 MB = 5 * 1024 * 1024 = 5,242,880 bytes
    MAX_FILE_SIZE: int = int(os.getenv("MAX_FILE_SIZE", 5 * 1024 * 1024))

    # Margen para cabeceras y separadores del multipart al comparar el
    # Content-Length de la peticion contra MAX_FILE_SIZE.
    MULTIPART_OVERHEAD: int = int(os.getenv("MULTIPART_OVERHEAD", 64 * 1024))

    # Lista blanca de extensiones. Se compara contra el sufijo del nombre
    # ORIGINAL en minusculas (".PDF" -> ".pdf").
    ALLOWED_EXTENSIONS: list[str] = [".jpg", ".jpeg", ".png", ".gif", ".pdf", ".txt"]

    # Lista blanca de tipos MIME declarados por el cliente.
    # "image/jpg" no es un tipo registrado, pero algunos navegadores lo envian.
    # OJO: el tipo declarado NO se verifica contra el contenido salvo que
    # VERIFY_CONTENT_TYPE este activo.
    ALLOWED_MIME_TYPES: list[str] = [
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "application/pdf",
        "text/plain",
    ]

    # Deteccion opcional del tipo real con python-magic (magic bytes).
    VERIFY_CONTENT_TYPE: bool = _env_bool("VERIFY_CONTENT_TYPE", False)

    # ---------- Rate limiting ----------

    # Maximo de subidas por cliente dentro de la ventana deslizante.
    RATE_LIMIT_MAX_UPLOADS: int = int(os.getenv("RATE_LIMIT_MAX_UPLOADS", 10))

    # Duracion de la ventana en segundos.
    RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", 60))

    # URI del almacenamiento de contadores (formato de la libreria `limits`).
    #   "memory://"               -> en memoria, un solo proceso
    #   "redis://localhost:6379"  -> compartido entre varias instancias
    RATE_LIMIT_STORAGE_URI: str = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")

    # Si es True, la IP del cliente se toma del primer valor de
    # X-Forwarded-For (servicio detras de un reverse proxy de confianza).
    TRUST_PROXY: bool = _env_bool("TRUST_PROXY", False)

    # ---------- Peticiones ----------

    # Tiempo maximo para procesar una subida antes de responder con error.
    UPLOAD_TIMEOUT_SECONDS: float = float(os.getenv("UPLOAD_TIMEOUT_SECONDS", 30))

    # Origenes permitidos para CORS, separados por coma.
    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def max_file_size_mb(self) -> float:
        """Limite de tamano expresado en MB, para los mensajes de error."""
        return self.MAX_FILE_SIZE / (1024 * 1024)


settings = Settings()
