"""File-zone facade over the S3 client.

A file zone is a bucket and a file is an object in it. Every method passes
straight through to the client, except uploads, which create the bucket on
first use.
"""

import logging
from typing import BinaryIO, Optional

import urllib3

from s3_lite.client import MEDIATYPE_OCTETSTREAM, S3Client
from s3_lite.config import StoreConfig
from s3_lite.errors import ConfigurationError, ErrorHandler
from s3_lite.utils import copy_stream

logger = logging.getLogger(__name__)

DOWNLOAD_BUFFER_SIZE = 9000


def _fail_activation(error: Exception) -> None:
    raise ConfigurationError(f"File zone activation failed: {error}") from error


class FileZone:
    """Upload, list, download and delete files grouped into zones."""

    def __init__(self, client: S3Client):
        self.client = client

    @classmethod
    def activate(cls, config: StoreConfig, transport=None, on_error: Optional[ErrorHandler] = None) -> "FileZone":
        """Build the client and prove the store is reachable.

        Raises:
            ConfigurationError: the store cannot be reached or rejects the keys.
        """
        client = S3Client(config, transport=transport, on_error=on_error)
        buckets = client.get_all_buckets(_fail_activation)
        logger.info("Connected to object store at %s", config.base_url)
        logger.debug("Bucket list: %s", buckets)
        return cls(client)

    def list_file_names(self, zone_id: str, on_error: Optional[ErrorHandler] = None) -> list[str]:
        return self.client.get_object_list(zone_id, on_error)

    def upload_file(
        self,
        zone_id: str,
        file_name: str,
        stream: BinaryIO,
        on_error: Optional[ErrorHandler] = None,
    ) -> bool:
        """Upload a file, creating its zone if needed."""
        return self.client.create_bucket_and_upload(zone_id, file_name, stream, MEDIATYPE_OCTETSTREAM, on_error)

    def delete_file(self, zone_id: str, file_name: str, on_error: Optional[ErrorHandler] = None) -> None:
        self.client.delete_object(zone_id, file_name, on_error)

    def download_file(
        self,
        zone_id: str,
        file_name: str,
        output: BinaryIO,
        on_error: Optional[ErrorHandler] = None,
    ) -> bool:
        """Copy a file into ``output``.

        Returns True when the file was found, even if copying it failed
        part-way; copy failures go to ``on_error``.
        """
        on_error = on_error or self.client.on_error
        stream = self.client.get_object(zone_id, file_name, on_error)
        if stream is None:
            return False
        try:
            copied = copy_stream(stream, output, DOWNLOAD_BUFFER_SIZE)
            logger.debug("Downloaded %d bytes of %s/%s", copied, zone_id, file_name)
        except (OSError, urllib3.exceptions.HTTPError) as e:
            on_error(e)
        finally:
            stream.close()
        return True
