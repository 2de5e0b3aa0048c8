"""
Modulo de limitacion de tasa de subidas (Rate Limiting).

Restringe cuantas subidas puede hacer un mismo cliente (identificado por
su IP) dentro de una ventana deslizante. Con los valores por defecto:
10 subidas por cada 60 segundos. La peticion numero 11 dentro de la
ventana se rechaza con HTTP 429 y NO cuenta como intento.

Como funciona?
--------------
Usamos la libreria `limits` (la misma que SlowAPI usa por debajo) con la
estrategia "moving window": el almacenamiento guarda la marca de tiempo
de cada intento y en cada consulta solo cuenta los que caen dentro de la
ventana. Los intentos viejos se descartan solos y las claves de clientes
inactivos expiran.

El almacenamiento se elige con una URI:
    memory://               -> contadores en memoria del proceso
    redis://localhost:6379  -> contadores compartidos entre instancias

El limiter NO es una variable global de los endpoints: main.py crea una
instancia y la guarda en app.state.rate_limiter. Los endpoints la reciben
por la dependencia get_rate_limiter(), y los tests pueden reemplazarla.
"""

import logging

from fastapi import Request
from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter
from slowapi.util import get_remote_address

from secure_upload.config import settings
from secure_upload.errors import RateLimited

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Ventana deslizante de intentos por cliente.

    Parametros:
        max_attempts (int): Intentos permitidos dentro de la ventana.
        window_seconds (int): Duracion de la ventana en segundos.
        storage_uri (str): URI de almacenamiento de la libreria `limits`.
    """

    def __init__(self, max_attempts: int, window_seconds: int, storage_uri: str = "memory://"):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.storage = storage_from_string(storage_uri)
        self.strategy = MovingWindowRateLimiter(self.storage)
        # "max_attempts por cada window_seconds segundos"
        self.item = RateLimitItemPerSecond(max_attempts, window_seconds)

    @classmethod
    def from_settings(cls) -> "RateLimiter":
        return cls(
            settings.RATE_LIMIT_MAX_UPLOADS,
            settings.RATE_LIMIT_WINDOW_SECONDS,
            settings.RATE_LIMIT_STORAGE_URI,
        )

    def allow(self, client_id: str) -> bool:
        """
        Registra un intento de `client_id` si todavia tiene cupo.

        Retorna:
            bool: True si el intento se acepto (y quedo registrado),
                False si el cliente ya alcanzo el maximo en la ventana.
                Un intento rechazado no se registra.
        """
        return self.strategy.hit(self.item, "upload", client_id)

    def reset(self, client_id: str | None = None) -> None:
        """Olvida los intentos de un cliente, o de todos si no se indica ninguno."""
        if client_id is None:
            self.storage.reset()
        else:
            self.strategy.clear(self.item, "upload", client_id)


def get_client_id(request: Request) -> str:
    """
    Identifica al cliente por su IP.

    Detras de un reverse proxy (TRUST_PROXY) la IP real llega en el primer
    valor de X-Forwarded-For; si no, usamos la direccion de la conexion.
    """
    if settings.TRUST_PROXY:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return get_remote_address(request)


def get_rate_limiter(request: Request) -> RateLimiter:
    """Dependencia de FastAPI: el limiter de la aplicacion."""
    return request.app.state.rate_limiter


async def enforce_upload_rate_limit(request: Request) -> None:
    """
    Dependencia de FastAPI para POST /upload.

    Es async para correr en el event loop y no en el threadpool. Con
    "memory://" la consulta es en memoria; con "redis://" es una llamada
    sincrona corta que bloquea el loop mientras dura.

    Raises:
        RateLimited: Si el cliente excedio su cupo (HTTP 429).
    """
    client_id = get_client_id(request)
    if not get_rate_limiter(request).allow(client_id):
        logger.warning("Rate limit exceeded for client %s", client_id)
        raise RateLimited()
