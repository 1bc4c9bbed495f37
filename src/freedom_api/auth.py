"""
Freedom API - Authentication

Credential validation and HTTP Basic authentication handling.
"""

from typing import Optional

import httpx

from .errors import MissingCredentialsError


def validate_credentials(key: Optional[str], secret: Optional[str]) -> None:
    """Validate a key/secret pair.

    Args:
        key: The ATLAS Freedom key
        secret: The ATLAS Freedom secret

    Raises:
        MissingCredentialsError: If either value is None or blank
    """
    if key is None or key.strip() == "":
        raise MissingCredentialsError("key")
    if secret is None or secret.strip() == "":
        raise MissingCredentialsError("secret")


def mask_secret(value: str) -> str:
    """Mask a credential for safe logging.

    Args:
        value: The credential to mask

    Returns:
        Masked value showing only the first and last 2 characters

    Example:
        >>> mask_secret("abcdef123456")
        'ab****56'
    """
    if len(value) <= 6:
        return "****"
    return value[:2] + "****" + value[-2:]


def get_auth(key: str, secret: str) -> httpx.BasicAuth:
    """Get the HTTP Basic auth used for every Freedom request.

    Args:
        key: The ATLAS Freedom key (username)
        secret: The ATLAS Freedom secret (password)

    Returns:
        httpx auth object
    """
    return httpx.BasicAuth(key, secret)
