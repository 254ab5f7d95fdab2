"""
S3Config - Connection settings for the S3/MinIO object store.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Union

from .exceptions import ConfigurationError


FALSE_VALUES = ('0', 'false', 'no', 'off')


def parse_bool(value: Union[bool, str]) -> bool:
    """Boolean from a TOML bool or an env style string."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() not in FALSE_VALUES
    raise ConfigurationError(f"Expected a boolean, got {value!r}")


@dataclass
class S3Config:
    """
    Connection settings for an S3 compatible object store.

    Attributes:
        endpoint: Endpoint URL (e.g., 'http://localhost:9000')
        bucket: Bucket holding the derivatives
        access_key: Access key id
        secret_key: Secret access key
        region: Region name
        verify_ssl: Verify TLS certificates
    """
    endpoint: Optional[str] = None
    bucket: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = 'us-east-1'
    verify_ssl: bool = True

    @classmethod
    def from_env(cls) -> 'S3Config':
        """Build a config from S3_* environment variables."""
        return cls(
            endpoint=os.getenv('S3_ENDPOINT'),
            bucket=os.getenv('S3_BUCKET'),
            access_key=os.getenv('S3_ACCESS_KEY'),
            secret_key=os.getenv('S3_SECRET_KEY'),
            region=os.getenv('S3_REGION', 'us-east-1'),
            verify_ssl=parse_bool(os.getenv('S3_VERIFY_SSL', 'true')),
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'S3Config':
        """
        Build a config from the [s3] table.

        Credentials missing from the table fall back to S3_ACCESS_KEY and
        S3_SECRET_KEY.
        """
        env = cls.from_env()
        return cls(
            endpoint=data.get('endpoint') or env.endpoint,
            bucket=data.get('bucket') or env.bucket,
            access_key=data.get('access_key') or env.access_key,
            secret_key=data.get('secret_key') or env.secret_key,
            region=data.get('region') or env.region,
            verify_ssl=parse_bool(data.get('verify_ssl', env.verify_ssl)),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when valid)."""
        errors = []
        if not self.endpoint:
            errors.append("S3 endpoint is not set (s3.endpoint or S3_ENDPOINT)")
        if not self.bucket:
            errors.append("S3 bucket is not set (s3.bucket or S3_BUCKET)")
        if not self.access_key:
            errors.append("S3 access key is not set (s3.access_key or S3_ACCESS_KEY)")
        if not self.secret_key:
            errors.append("S3 secret key is not set (s3.secret_key or S3_SECRET_KEY)")
        return errors
