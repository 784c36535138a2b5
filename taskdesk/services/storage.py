# taskdesk/services/storage.py
"""
Хранилище загруженных файлов на локальном диске.

Файлы лежат в UPLOAD_DIR/<project_id>/<uuid>.<ext>; в БД хранится путь.
"""

import logging
import uuid
from pathlib import Path
from typing import Tuple

from taskdesk.core.settings import settings

logger = logging.getLogger("Taskdesk.Storage")


def upload_root() -> Path:
    return Path(settings.UPLOAD_DIR)


def stored_name_for(original_name: str) -> str:
    """Уникальное имя на диске с расширением исходного файла."""
    ext = Path(original_name).suffix.lower()
    return f"{uuid.uuid4()}{ext}"


def save_blob(content: bytes, original_name: str, folder: str) -> Tuple[str, str]:
    """
    Записывает содержимое на диск. Возвращает (stored_name, file_path).
    """
    directory = upload_root() / folder
    directory.mkdir(parents=True, exist_ok=True)
    stored_name = stored_name_for(original_name)
    path = directory / stored_name
    path.write_bytes(content)
    logger.info(f"Stored blob {path} ({len(content)} bytes)")
    return stored_name, str(path)


def read_blob(file_path: str) -> bytes:
    return Path(file_path).read_bytes()


def remove_blob(file_path: str) -> None:
    """
    Удаляет файл с диска. OSError (в том числе FileNotFoundError)
    пробрасывается вызывающему.
    """
    Path(file_path).unlink()
    logger.info(f"Removed blob {file_path}")
