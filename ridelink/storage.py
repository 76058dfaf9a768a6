"""File-backed key/value store standing in for the apps' browser local storage.

Values are strings, as in ``localStorage``; ``get_json``/``set_json`` wrap
them. The whole file is rewritten on every change.
"""
from pathlib import Path
from typing import Optional
import json
import logging

from .config import settings

logger = logging.getLogger(__name__)

ADMIN_TOKEN = "admin_token"
ADMIN_USER = "admin_user"
DRIVER_TOKEN = "driverToken"
DRIVER_DATA = "driverData"
CUSTOMER_TOKEN = "authToken"
CUSTOMER_USER = "user"


class Storage:
    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or settings.STORAGE_PATH).expanduser()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("storage_unreadable: path=%s error=%s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str):
        data = self._load()
        data[key] = str(value)
        self._save(data)

    def remove_item(self, *keys: str):
        data = self._load()
        if any(k in data for k in keys):
            for k in keys:
                data.pop(k, None)
            self._save(data)

    def clear(self):
        self._save({})

    def get_json(self, key: str, default=None):
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("storage_bad_json: key=%s", key)
            return default

    def set_json(self, key: str, value):
        self.set_item(key, json.dumps(value))
