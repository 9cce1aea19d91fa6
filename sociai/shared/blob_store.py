from functools import lru_cache

from azure.core.exceptions import ResourceExistsError
from azure.storage.blob import ContainerClient, ContentSettings

from sociai.specs.common.errors import ConfigurationError

from .config import get_studio_config

# Generated assets are never rewritten under the same name.
MEDIA_CACHE_CONTROL = "public, max-age=31536000, immutable"


@lru_cache(maxsize=None)
def _media_container(connection_string: str, container: str) -> ContainerClient:
    client = ContainerClient.from_connection_string(connection_string, container)
    try:
        client.create_container(public_access="blob")
    except ResourceExistsError:
        pass
    return client


def upload_media(blob_name: str, data: bytes, mime_type: str) -> str:
    """Store a rendered asset in the public media container and return its URL."""
    cfg = get_studio_config()
    if not cfg.blob_connection_string:
        raise ConfigurationError("PUBLIC_BLOB_CONNECTION_STRING is required for blob uploads")
    blob = _media_container(cfg.blob_connection_string, cfg.blob_container).get_blob_client(blob_name)
    blob.upload_blob(
        data,
        overwrite=False,
        content_settings=ContentSettings(content_type=mime_type, cache_control=MEDIA_CACHE_CONTROL),
    )
    return blob.url
