"""S3-backed key-value storage."""

import os
import boto3
from typing import Iterable, Optional
from botocore.exceptions import ClientError
import logging

from .exceptions import StorageError
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

MISSING_KEY_CODES = ('NoSuchKey', '404', 'NotFound')


class S3Storage(KeyValueStorage):
    """Stores each key as a JSON object in an S3 bucket."""

    def __init__(self, bucket_name: str, prefix: str = ''):
        """
        Initialize S3 storage.

        Args:
            bucket_name: Name of the S3 bucket
            prefix: Key prefix prepended to every object key
        """
        self.bucket_name = bucket_name
        self.prefix = prefix

        # Support for LocalStack
        endpoint_url = os.environ.get('LOCALSTACK_ENDPOINT')
        if endpoint_url and os.environ.get('USE_LOCALSTACK', 'false').lower() == 'true':
            self.s3 = boto3.client('s3', endpoint_url=endpoint_url)
        else:
            self.s3 = boto3.client('s3')

    def _object_key(self, key: str) -> str:
        return f"{self.prefix}{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        """
        Download the object stored under a key.

        Args:
            key: Storage key

        Returns:
            Object body, or None if the object does not exist

        Raises:
            StorageError: If the download fails
        """
        object_key = self._object_key(key)
        try:
            response = self.s3.get_object(Bucket=self.bucket_name, Key=object_key)
            return response['Body'].read().decode('utf-8')
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in MISSING_KEY_CODES:
                return None
            logger.error(f"Error downloading s3://{self.bucket_name}/{object_key}: {e}")
            raise StorageError(f"Failed to read {key}: {str(e)}")
        except UnicodeDecodeError as e:
            logger.error(f"Error decoding s3://{self.bucket_name}/{object_key}: {e}")
            raise StorageError(f"Failed to read {key}: {str(e)}")

    def set_item(self, key: str, value: str) -> None:
        """
        Upload a value under a key.

        Args:
            key: Storage key
            value: Serialized value

        Raises:
            StorageError: If the upload fails
        """
        object_key = self._object_key(key)
        try:
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=object_key,
                Body=value.encode('utf-8'),
                ContentType='application/json',
                ServerSideEncryption='AES256'
            )
            logger.debug(f"Uploaded s3://{self.bucket_name}/{object_key}")
        except ClientError as e:
            logger.error(f"Error uploading s3://{self.bucket_name}/{object_key}: {e}")
            raise StorageError(f"Failed to write {key}: {str(e)}")

    def remove_items(self, keys: Iterable[str]) -> None:
        """
        Delete several keys in a single request.

        Args:
            keys: Storage keys

        Raises:
            StorageError: If the deletion fails
        """
        objects = [{'Key': self._object_key(key)} for key in keys]
        if not objects:
            return

        try:
            response = self.s3.delete_objects(
                Bucket=self.bucket_name,
                Delete={'Objects': objects, 'Quiet': True}
            )
        except ClientError as e:
            logger.error(f"Error deleting objects from s3://{self.bucket_name}: {e}")
            raise StorageError(f"Failed to remove keys: {str(e)}")

        errors = response.get('Errors', [])
        if errors:
            logger.error(f"Error deleting objects from s3://{self.bucket_name}: {errors}")
            raise StorageError(f"Failed to remove {len(errors)} key(s)")

        logger.info(f"Deleted {len(objects)} object(s) from s3://{self.bucket_name}")
