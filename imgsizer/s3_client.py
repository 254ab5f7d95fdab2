"""
S3Client - S3/MinIO operations for storing, tagging and listing derivatives.
"""

import logging
from typing import Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import ConfigurationError
from .s3_config import S3Config


NOT_FOUND_CODES = {'404', 'NoSuchKey', 'NoSuchBucket', 'NotFound'}


def is_not_found(error: ClientError) -> bool:
    """True when a ClientError is a 404-class response."""
    return error.response.get('Error', {}).get('Code') in NOT_FOUND_CODES


class S3Client:
    """
    Wrapper for S3/MinIO operations.

    Provides methods for bucket lifecycle, object tagging, uploading,
    downloading and listing. A client is not shared between concurrent
    tasks; use clone() to get a handle with its own boto3 client.
    """

    def __init__(self, config: S3Config, logger: Optional[logging.Logger] = None):
        """
        Initialize S3 client.

        Args:
            config: S3 configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        self._client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'}
            ),
            verify=config.verify_ssl
        )

    @property
    def bucket(self) -> str:
        return self.config.bucket

    def clone(self) -> 'S3Client':
        """Return a new client for the same bucket."""
        return S3Client(self.config, self.logger)

    def ensure_bucket(self, create: bool = False) -> None:
        """
        Make sure the bucket exists.

        Args:
            create: Create the bucket when it does not exist

        Raises:
            ConfigurationError: Bucket is missing and may not be created,
                or the store answered with an unexpected error
        """
        try:
            self._client.head_bucket(Bucket=self.bucket)
            return
        except ClientError as e:
            if not is_not_found(e):
                raise ConfigurationError(f"Bucket {self.bucket} could not be probed: {e}") from e
        except BotoCoreError as e:
            raise ConfigurationError(f"Bucket {self.bucket} could not be probed: {e}") from e

        if not create:
            raise ConfigurationError(f"Bucket {self.bucket} does not exist and create was not requested")

        self.logger.debug(f"Bucket {self.bucket} did not exist, creating")
        try:
            self._client.create_bucket(Bucket=self.bucket)
        except (ClientError, BotoCoreError) as e:
            raise ConfigurationError(f"Could not create bucket {self.bucket}: {e}") from e

    def get_tags(self, key: str) -> Dict[str, str]:
        """
        Get the tags of an object.

        Returns:
            Dict of tag key -> value, empty when the object does not exist
        """
        try:
            response = self._client.get_object_tagging(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                return {}
            raise
        return {tag['Key']: tag['Value'] for tag in response.get('TagSet', [])}

    def put_tags(self, key: str, tags: Dict[str, str]) -> None:
        """Replace the tags of an object."""
        self._client.put_object_tagging(
            Bucket=self.bucket,
            Key=key,
            Tagging={'TagSet': [{'Key': k, 'Value': v} for k, v in tags.items()]}
        )

    def get_object(self, key: str) -> dict:
        """Get an object response with its streaming body."""
        return self._client.get_object(Bucket=self.bucket, Key=key)

    def download_object(self, key: str) -> Optional[bytes]:
        """Download an object from S3, None when it does not exist."""
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                return None
            raise
        return response['Body'].read()

    def upload_object(
        self,
        key: str,
        data: bytes,
        content_type: str = 'application/octet-stream'
    ) -> None:
        """Upload an object to S3."""
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type
        )

    def list_keys(self, prefix: str) -> List[str]:
        """List object keys directly under a prefix."""
        keys = []
        for page in self._list_pages(prefix):
            for obj in page.get('Contents', []):
                keys.append(obj['Key'])
        return keys

    def list_prefixes(self, prefix: str) -> List[str]:
        """List 'directory' prefixes directly under a prefix."""
        prefixes = []
        for page in self._list_pages(prefix):
            for common_prefix in page.get('CommonPrefixes', []):
                prefixes.append(common_prefix['Prefix'])
        return prefixes

    def _list_pages(self, prefix: str):
        paginator = self._client.get_paginator('list_objects_v2')
        return paginator.paginate(
            Bucket=self.bucket,
            Prefix=prefix,
            Delimiter='/'
        )
