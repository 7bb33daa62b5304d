"""Configuration settings for the pointer index service."""

import os

from common.constants import SHARE_CODE_NAMESPACE, SHARE_CODE_SCHEME


DATABASE_PATH = os.environ.get("PRIVSHARE_INDEX_DB_PATH", "/app/data/pointers.db")

INDEX_HOST = os.environ.get("PRIVSHARE_INDEX_HOST", "0.0.0.0")

INDEX_PORT = int(os.environ.get("PRIVSHARE_INDEX_PORT", "8080"))

SCHEME = os.environ.get("PRIVSHARE_SCHEME", SHARE_CODE_SCHEME)

NAMESPACE = os.environ.get("PRIVSHARE_NAMESPACE", SHARE_CODE_NAMESPACE)
