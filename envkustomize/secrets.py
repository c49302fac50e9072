"""Library for expanding secret references in environment values.

A value may point at a secret stored in Google Cloud Secret Manager instead
of holding the secret itself. The latest version of the secret is fetched
when the environment file is loaded:

```
export DB_PASSWORD=gcp-secret://projects/my-project/secrets/db-password
export TLS_KEY=gcp-secret-base64://projects/my-project/secrets/tls-key
```

The `gcp-secret-base64://` form stores the base64 encoding of the payload,
which is the form expected by the `data` field of a kubernetes Secret.
"""

from abc import ABC, abstractmethod
import base64
import logging
from typing import Any

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import secretmanager

from .exceptions import SecretException

__all__ = [
    "SecretFetcher",
    "GcpSecretFetcher",
    "SecretResolver",
]

_LOGGER = logging.getLogger(__name__)

GCP_SECRET_PREFIX = "gcp-secret://"
GCP_SECRET_BASE64_PREFIX = "gcp-secret-base64://"
LATEST_VERSION = "latest"


class SecretFetcher(ABC):
    """Retrieves the payload of a secret version."""

    @abstractmethod
    def fetch(self, name: str) -> bytes:
        """Return the payload of the fully qualified secret version name."""


class GcpSecretFetcher(SecretFetcher):
    """Fetch secrets from Google Cloud Secret Manager.

    The client is created on first use so that environments without any
    secret references never need Google Cloud credentials.
    """

    def __init__(self) -> None:
        """Initialize GcpSecretFetcher."""
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            try:
                self._client = secretmanager.SecretManagerServiceClient()
            except auth_exceptions.GoogleAuthError as err:
                raise SecretException(
                    f"failed to create secret manager client: {err}"
                ) from err
        return self._client

    def fetch(self, name: str) -> bytes:
        """Return the payload of the secret version."""
        client = self._get_client()
        try:
            response = client.access_secret_version(request={"name": name})
        except (api_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as err:
            raise SecretException(f"failed to fetch secret from {name}: {err}") from err
        return bytes(response.payload.data)


class SecretResolver:
    """Replace secret references in a value with the secret contents."""

    def __init__(self, fetcher: SecretFetcher | None = None) -> None:
        """Initialize SecretResolver."""
        self._fetcher = fetcher or GcpSecretFetcher()

    def _fetch(self, prefix: str, value: str) -> bytes | None:
        """Fetch the secret referenced by the value, if it has the prefix."""
        if not value.startswith(prefix):
            return None
        secret_path = value[len(prefix) :]
        name = f"{secret_path}/versions/{LATEST_VERSION}"
        data = self._fetcher.fetch(name)
        _LOGGER.info("Secret fetched from %s", name)
        return data

    def resolve(self, value: str) -> str:
        """Return the value with any secret reference expanded."""
        if (data := self._fetch(GCP_SECRET_PREFIX, value)) is not None:
            try:
                value = data.decode("utf-8")
            except UnicodeDecodeError as err:
                raise SecretException(
                    f"Secret {value} is not valid utf-8, use {GCP_SECRET_BASE64_PREFIX}"
                ) from err
        if (data := self._fetch(GCP_SECRET_BASE64_PREFIX, value)) is not None:
            value = base64.b64encode(data).decode("ascii")
        return value
