import base64
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

# Environment variables
ACCESS_KEY_ID_ENV = 'aims_access_key_id'
SECRET_KEY_ENV = 'aims_secret_key'


class DecryptionError(Exception):
    """Custom exception for credential decryption errors"""
    pass


@dataclass(frozen=True)
class CredentialPair:
    access_key_id: Optional[str]
    secret_key: str


class CredentialCache:
    """
    Write-once cache for the collector's decrypted credentials.

    Created empty at process start. The first successful call to
    get_decrypted_credentials() populates it and every later call returns
    the same pair without contacting KMS. A failed decrypt leaves the
    cache empty so the next invocation tries again.
    """

    def __init__(self, kms_client: Any = None):
        self._kms = kms_client
        self._credentials: Optional[CredentialPair] = None

    @property
    def is_populated(self) -> bool:
        return self._credentials is not None

    def _kms_client(self) -> Any:
        if self._kms is None:
            self._kms = boto3.client('kms')
        return self._kms

    def get_decrypted_credentials(self) -> CredentialPair:
        """
        Return the cached credential pair, decrypting it on first use

        Returns:
            CredentialPair with the plaintext secret key

        Raises:
            DecryptionError: If the ciphertext is missing or KMS rejects it
        """
        if self._credentials is not None:
            return self._credentials

        ciphertext = os.environ.get(SECRET_KEY_ENV)
        if not ciphertext:
            raise DecryptionError(f"Missing required environment variable: {SECRET_KEY_ENV}")

        try:
            response = self._kms_client().decrypt(
                CiphertextBlob=base64.b64decode(ciphertext)
            )
            secret_key = response['Plaintext'].decode('ascii', errors='replace')
        except (BotoCoreError, ClientError, ValueError) as e:
            raise DecryptionError(f"Failed to decrypt {SECRET_KEY_ENV}: {str(e)}") from e

        self._credentials = CredentialPair(
            access_key_id=os.environ.get(ACCESS_KEY_ID_ENV),
            secret_key=secret_key
        )
        logger.info("Decrypted collector credentials")
        return self._credentials
