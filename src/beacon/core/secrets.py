"""
Secrets access for Beacon.

Purpose
-------
One lookup for secrets in both development and production. Development
machines keep secrets in a local dotenv-style file that is never committed;
production injects them as environment variables.

Responsibilities
----------------
- Read the optional secrets file once at construction
- Layer environment variables on top (environment wins on name clashes)
- Provide optional and required lookups

Non-Responsibilities
--------------------
- Non-secret configuration (handled by Config)
- Secret rotation or remote vaults
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from dotenv import dotenv_values

from beacon.core.exceptions import MissingSecretError
from beacon.core.logging.logger import get_logger

logger = get_logger(__name__)


class SecretsManager:
    """
    Secrets from local secret files and environment variables.

    Usage
    -----
    >>> secrets = SecretsManager(["secrets.env"])
    >>> token = secrets.get_required_secret("DiscordToken")
    """

    def __init__(
        self,
        secret_files: Sequence[Union[str, Path]] = (),
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        logger.debug("Creating SecretsManager")
        self._secrets = self._build_secrets(secret_files, os.environ if environ is None else environ)

    @staticmethod
    def _build_secrets(
        secret_files: Sequence[Union[str, Path]],
        environ: Mapping[str, str],
    ) -> Dict[str, str]:
        # Later sources override earlier ones; the environment is applied last
        secrets: Dict[str, str] = {}
        loaded: List[str] = []
        for secret_file in secret_files:
            path = Path(secret_file)
            if not path.is_file():
                logger.debug("Secrets file not found, skipping", extra={"path": str(path)})
                continue
            logger.debug("Adding secrets from file", extra={"path": str(path)})
            for key, value in dotenv_values(path).items():
                if value is not None:
                    secrets[key] = value
            loaded.append(str(path))

        secrets.update(environ)
        logger.debug(
            "Secrets loaded",
            extra={"files": loaded, "count": len(secrets)},
        )
        return secrets

    def get_secret(self, secret_name: str) -> Optional[str]:
        """Return the secret value or None if nothing was found."""
        return self._secrets.get(secret_name)

    def get_required_secret(self, secret_name: str) -> str:
        """
        Return the secret value.

        Raises
        ------
        MissingSecretError
            If the secret is absent or empty.
        """
        value = self.get_secret(secret_name)
        if not value:
            raise MissingSecretError(secret_name)
        return value
