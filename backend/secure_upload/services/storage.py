"""
Almacenamiento local de archivos subidos.

Todos los archivos viven en un solo directorio plano (settings.UPLOAD_DIR):

    uploads/
        report_3f9c2a7b1d4e8f60.pdf
        foto_0a1b2c3d4e5f6071.png

No hay base de datos ni manifiesto; el listado del directorio es la
fuente de verdad.

Este servicio se encarga de:
- Escribir el archivo por bloques (aiofiles) cortando si supera el limite.
- Volver a medir el archivo ya escrito (defensa en profundidad).
- Borrar el archivo parcial ante cualquier fallo: en el camino de rechazo
  no quedan archivos huerfanos.
- Resolver el nombre pedido en GET /uploads/{filename} sin salir del
  directorio de subidas.
- Listar el contenido del directorio.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import aiofiles
import aiofiles.os
from fastapi import Request
from starlette.datastructures import UploadFile

from secure_upload.config import settings
from secure_upload.errors import IOFailure, NotFound, PathTraversalAttempt
from secure_upload.services.sanitizer import is_stored_name
from secure_upload.services.validator import size_error

logger = logging.getLogger(__name__)


@dataclass
class StoredFile:
    """Archivo aceptado y guardado en disco."""
    stored_name: str
    size: int
    mime_type: str
    relative_path: str


@dataclass
class ListedFile:
    """Entrada del directorio de subidas, tal como la reporta GET /api/files."""
    filename: str
    size: int
    uploaded: datetime


class LocalStorage:
    """
    Servicio de almacenamiento sobre un directorio local.

    Parametros:
        upload_dir (str | Path): Directorio de subidas. Se crea si no existe.
    """

    def __init__(self, upload_dir: str | Path):
        self.root = Path(upload_dir)
        self.ensure_directory()

    def ensure_directory(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, stored_name: str) -> Path:
        return self.root / stored_name

    async def store(
        self,
        stored_name: str,
        upload: UploadFile,
        mime_type: str,
        max_size: int | None = None,
    ) -> StoredFile:
        """
        Escribe el contenido de `upload` en <upload_dir>/<stored_name>.

        Parametros:
            stored_name (str): Nombre ya sanitizado.
            upload (UploadFile): Archivo de la peticion, leido por bloques.
            mime_type (str): Tipo MIME ya validado.
            max_size (int | None): Limite en bytes (por defecto MAX_FILE_SIZE).

        Retorna:
            StoredFile

        Raises:
            FileTooLarge: Si el archivo supera el limite, al escribir o al
                volver a medirlo. El archivo parcial se borra.
            IOFailure: Si falla el sistema de archivos.
        """
        if max_size is None:
            max_size = settings.MAX_FILE_SIZE
        destination = self.path_for(stored_name)
        created = False
        written = 0

        try:
            # "xb" nunca pisa un archivo existente
            async with aiofiles.open(destination, "xb") as output:
                created = True
                while True:
                    chunk = await upload.read(settings.CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > max_size:
                        raise size_error()
                    await output.write(chunk)

            stat = await aiofiles.os.stat(destination)
            if stat.st_size > max_size:
                raise size_error()
        except OSError as exc:
            if created:
                self._discard(destination)
            logger.exception("Could not write %s", destination)
            raise IOFailure() from exc
        except BaseException:
            # Rechazo por tamano, cancelacion por timeout, etc.
            if created:
                self._discard(destination)
            raise

        return StoredFile(
            stored_name=stored_name,
            size=stat.st_size,
            mime_type=mime_type,
            relative_path=f"/uploads/{stored_name}",
        )

    def _discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.exception("Could not remove partial upload %s", path)

    def resolve(self, requested_name: str) -> Path:
        """
        Devuelve la ruta de un archivo guardado.

        El nombre se busca tal cual. No se vuelve a sanitizar, porque eso
        agregaria un sufijo aleatorio nuevo y nunca coincidiria.

        Raises:
            PathTraversalAttempt: Si el nombre no es un nombre almacenado
                valido o la ruta canonica queda fuera del directorio.
            NotFound: Si el archivo no existe.
        """
        root = self.root.resolve()
        if not is_stored_name(requested_name):
            logger.warning("Rejected suspicious file name %r", requested_name)
            raise PathTraversalAttempt()

        candidate = (root / requested_name).resolve()
        if candidate == root or not candidate.is_relative_to(root):
            logger.warning("Path traversal attempt: %r -> %s", requested_name, candidate)
            raise PathTraversalAttempt()

        if not candidate.is_file():
            raise NotFound()
        return candidate

    def list_files(self) -> list[ListedFile]:
        """
        Lista los archivos del directorio de subidas, ordenados por nombre.

        Raises:
            IOFailure: Si el directorio no se puede leer.
        """
        try:
            entries = []
            for path in sorted(self.root.iterdir()):
                if path.name.startswith(".") or not path.is_file():
                    continue
                stat = path.stat()
                entries.append(
                    ListedFile(
                        filename=path.name,
                        size=stat.st_size,
                        uploaded=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    )
                )
            return entries
        except OSError as exc:
            logger.exception("Could not list %s", self.root)
            raise IOFailure("Error while reading files") from exc


def get_storage(request: Request) -> LocalStorage:
    """
    Dependencia de FastAPI: el almacenamiento de la aplicacion.

    Se guarda en app.state.storage y solo se vuelve a crear si cambia
    settings.UPLOAD_DIR.
    """
    storage = getattr(request.app.state, "storage", None)
    if storage is None or storage.root != Path(settings.UPLOAD_DIR):
        storage = LocalStorage(settings.UPLOAD_DIR)
        request.app.state.storage = storage
    return storage
