import logging
import os
from typing import Optional

from supabase import create_client, Client

from config import SUPABASE_URL, SUPABASE_KEY, SUPABASE_BUCKET, UPLOAD_DIR

logger = logging.getLogger(__name__)

# Supabase is optional: without credentials images are kept on local disk
supabase: Optional[Client] = create_client(SUPABASE_URL, SUPABASE_KEY) if SUPABASE_URL and SUPABASE_KEY else None


def upload_image_to_supabase(file_bytes: bytes, file_name: str, content_type: str) -> str:
    try:
        supabase.storage.from_(SUPABASE_BUCKET).upload(
            path=file_name,
            file=file_bytes,
            file_options={"content_type": content_type},
        )
        return supabase.storage.from_(SUPABASE_BUCKET).get_public_url(file_name)
    except Exception:
        logger.error("uploading %s to supabase failed", file_name, exc_info=True)
        raise


def save_image_locally(file_bytes: bytes, file_name: str) -> str:
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    with open(os.path.join(UPLOAD_DIR, file_name), "wb") as f:
        f.write(file_bytes)
    return f"/uploads/{file_name}"


def save_image(file_bytes: bytes, file_name: str, content_type: str) -> str:
    """Store an image and return the URL it is served from."""
    if supabase:
        return upload_image_to_supabase(file_bytes, file_name, content_type)
    return save_image_locally(file_bytes, file_name)
