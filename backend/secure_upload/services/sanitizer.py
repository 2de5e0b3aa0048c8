"""
Sanitizacion de nombres de archivo.

El nombre que envia el cliente nunca se usa tal cual en disco. Se
transforma asi:

    1. Todo caracter fuera de [A-Za-z0-9._-] se reemplaza por "_"
       (incluye "/", "\\" y espacios).
    2. Se eliminan todas las secuencias "..".
    3. Se eliminan los puntos iniciales (nada de archivos ocultos).
    4. Se separa nombre base y extension, y al nombre base se le agrega
       un sufijo aleatorio de 16 digitos hexadecimales.

Ejemplos:
    "report.pdf"          -> "report_3f9c2a7b1d4e8f60.pdf"
    "../../etc/passwd"    -> "__etc_passwd_a1b2c3d4e5f60718"
    "mi foto (1).PNG"     -> "mi_foto__1__0f1e2d3c4b5a6978.PNG"
"""

import os
import re
import secrets

# Caracteres permitidos en un nombre almacenado.
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_SAFE_NAME = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]*$")

# 8 bytes aleatorios -> 16 digitos hexadecimales
SUFFIX_BYTES = 8


def _clean(raw_name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", raw_name)
    cleaned = cleaned.replace("..", "")
    return cleaned.lstrip(".").strip()


def sanitize_filename(raw_name: str) -> str:
    """
    Convierte un nombre arbitrario en un nombre seguro y unico para disco.

    Parametros:
        raw_name (str): Nombre original enviado por el cliente.

    Retorna:
        str: "<base>_<hex>.<ext>". Es determinista salvo por el sufijo
            aleatorio, que sale de `secrets` (fuente criptografica).
    """
    cleaned = _clean(raw_name)
    base, ext = os.path.splitext(cleaned)
    suffix = secrets.token_hex(SUFFIX_BYTES)
    return f"{base}_{suffix}{ext}"


def is_stored_name(name: str) -> bool:
    """
    True si `name` tiene la forma de un nombre ya sanitizado.

    Se usa al servir archivos: el nombre pedido se busca tal cual (sin
    volver a sanitizar, lo que agregaria otro sufijo), pero solo si no
    podria salir del directorio de subidas.
    """
    return bool(_SAFE_NAME.match(name)) and ".." not in name
