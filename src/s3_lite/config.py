"""Store configuration, validated once at startup."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlsplit

import boto3
from botocore.exceptions import BotoCoreError

from s3_lite.errors import ConfigurationError


def normalize_endpoint(url: Optional[str]) -> Optional[str]:
    """Ensure endpoint URL has a scheme and no trailing slash."""
    if not url or not url.strip():
        return None
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    return url.rstrip("/")


@dataclass(frozen=True)
class Credentials:
    """Keys and endpoint owned by one client instance."""

    base_url: str
    access_key: str
    secret_key: str

    def __repr__(self):
        return f"Credentials(base_url={self.base_url!r}, access_key={self.access_key!r}, secret_key='***')"


@dataclass(frozen=True)
class StoreConfig:
    """Configuration for an S3-compatible store.

    Raises ConfigurationError on construction when the base URL, access key
    or secret key is missing, or when the base URL has no host.
    """

    base_url: str
    access_key: str
    secret_key: str
    # Accept any TLS certificate (self-signed test rigs only)
    insecure_tls: bool = False
    timeout: Optional[float] = None

    def __post_init__(self):
        base_url = normalize_endpoint(self.base_url)
        if base_url is None:
            raise ConfigurationError("No store URL set")
        parts = urlsplit(base_url)
        if not parts.netloc or parts.query or parts.fragment:
            raise ConfigurationError(f"Store URL is not correct: {self.base_url}")
        if not self.access_key:
            raise ConfigurationError("No store access key is set")
        if not self.secret_key:
            raise ConfigurationError("No store secret key is set")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout}")
        object.__setattr__(self, "base_url", base_url)

    def __repr__(self):
        return (
            f"StoreConfig(base_url={self.base_url!r}, access_key={self.access_key!r}, "
            f"secret_key='***', insecure_tls={self.insecure_tls!r}, timeout={self.timeout!r})"
        )

    @property
    def credentials(self) -> Credentials:
        return Credentials(self.base_url, self.access_key, self.secret_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreConfig":
        """Load from S3_ENDPOINT, S3_ACCESS_KEY, S3_SECRET_KEY, S3_VERIFY_SSL, S3_TIMEOUT."""
        environ = os.environ if environ is None else environ
        timeout = environ.get("S3_TIMEOUT")
        try:
            timeout_value = float(timeout) if timeout else None
        except ValueError:
            raise ConfigurationError(f"S3_TIMEOUT is not a number: {timeout!r}") from None
        return cls(
            base_url=environ.get("S3_ENDPOINT", ""),
            access_key=environ.get("S3_ACCESS_KEY", ""),
            secret_key=environ.get("S3_SECRET_KEY", ""),
            # SSL verification enabled by default
            # Set S3_VERIFY_SSL=false to disable (use with caution)
            insecure_tls=environ.get("S3_VERIFY_SSL", "true").lower() == "false",
            timeout=timeout_value,
        )

    @classmethod
    def from_profile(
        cls,
        base_url: str,
        profile_name: str,
        insecure_tls: bool = False,
        timeout: Optional[float] = None,
    ) -> "StoreConfig":
        """Load keys from an AWS shared-credentials profile."""
        try:
            session = boto3.Session(profile_name=profile_name)
            credentials = session.get_credentials()
        except BotoCoreError as e:
            raise ConfigurationError(f"Cannot load profile {profile_name!r}: {e}") from e
        if credentials is None:
            raise ConfigurationError(f"Profile {profile_name!r} has no credentials")
        frozen = credentials.get_frozen_credentials()
        return cls(
            base_url=base_url,
            access_key=frozen.access_key,
            secret_key=frozen.secret_key,
            insecure_tls=insecure_tls,
            timeout=timeout,
        )
