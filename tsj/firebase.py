"""Firebase settings and helpers for uploaded file parts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from tsj.envconfig import env_str

__all__ = ["Config", "content_type", "extension"]


@dataclass
class Config:
    """Firebase settings read from the environment."""

    credentials_file: str
    database_url: str
    storage_bucket: str

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            credentials_file=env_str("FIREBASE_CREDENTIALS_FILE", required=True),
            database_url=env_str("FIREBASE_DATABASE_URL", required=True),
            storage_bucket=env_str("FIREBASE_STORAGE_BUCKET", required=True),
        )


def _header(headers: Mapping[str, str], name: str) -> str:
    wanted = name.lower()
    return next((value for key, value in headers.items() if key.lower() == wanted), "")


def content_type(headers: Mapping[str, str]) -> str:
    """Return the Content-Type of a file part, or an empty string."""
    return _header(headers, "Content-Type")


def extension(headers: Mapping[str, str]) -> str:
    """Return the file name extension from a part's Content-Disposition."""
    disposition = _header(headers, "Content-Disposition").replace('"', "")
    parts = disposition.split(";")
    if len(parts) < 3:
        raise ValueError("can not extract file extension")
    tail = parts[2].rsplit("/", 1)[-1]
    dot = tail.rfind(".")
    return tail[dot:] if dot >= 0 else ""