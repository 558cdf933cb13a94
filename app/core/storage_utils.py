# app/core/storage_utils.py
"""
Product image storage on the Supabase Storage bucket.

Only the admin image upload writes here, always with the service role
key, so the key never has to reach a browser.
"""
import uuid
from functools import lru_cache

from supabase import create_client

from app.core.config import get_settings

settings = get_settings()


@lru_cache
def storage_bucket():
    """
    Bucket handle built once per process.

    Raises:
        RuntimeError: if SUPABASE_SERVICE_ROLE_KEY is not set.
    """
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError("Missing SUPABASE_SERVICE_ROLE_KEY in .env")
    client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    return client.storage.from_(settings.STORAGE_BUCKET)


def upload_to_storage(path: str, file_bytes: bytes, content_type: str) -> str:
    """
    Upload raw bytes and return the object's public URL.

    Args:
        path: object path inside the bucket, e.g. "products/<id>/<uuid>.png"
        file_bytes: file content
        content_type: MIME type stored with the object

    Raises:
        Any exception raised by the Supabase client if the upload fails.
    """
    bucket = storage_bucket()
    bucket.upload(path, file_bytes, {"upsert": "true", "content-type": content_type})
    return bucket.get_public_url(path)


def generate_filename(ext: str) -> str:
    """Random object name: <uuid4>.<ext>"""
    return f"{uuid.uuid4()}.{ext}"
