"""Credential providers for session bootstrap.

Credentials are looked up by key through an injected CredentialProvider
instead of being scraped out of files by the startup script. Settings map
environment variable names to keys; the session exports whatever the
provider resolves.
"""

import logging
import netrc
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path

from macdots.core.paths import get_default_netrc_path

logger = logging.getLogger(__name__)

# Fields of a netrc machine entry that can be requested with "host:field"
NETRC_FIELDS = ("login", "account", "password")

# Environment override for a key: kafka.local:password -> MACDOTS_CREDENTIAL_KAFKA_LOCAL_PASSWORD
CREDENTIAL_ENV_PREFIX = "MACDOTS_CREDENTIAL_"


class CredentialError(Exception):
    """Raised when a credential store exists but cannot be read."""


class CredentialProvider(ABC):
    """Abstract source of named credentials.

    Example:
        >>> provider = NetrcCredentialProvider()
        >>> provider.get("kafka.local:password")
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the credential stored under key, or None if absent.

        Raises:
            CredentialError: If the backing store cannot be read.
        """


class StaticCredentialProvider(CredentialProvider):
    """Credentials held in memory."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values = dict(values or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)


class EnvironmentCredentialProvider(CredentialProvider):
    """Credentials read from an environment mapping.

    A key maps to the prefix followed by the key uppercased, with every
    character that is not a letter or digit replaced by an underscore.
    """

    def __init__(self, env: Mapping[str, str], prefix: str = "") -> None:
        self._env = env
        self.prefix = prefix

    def variable_for(self, key: str) -> str:
        """Environment variable name holding the credential for key."""
        return self.prefix + re.sub(r"[^A-Za-z0-9]", "_", key).upper()

    def get(self, key: str) -> str | None:
        return self._env.get(self.variable_for(key))


class NetrcCredentialProvider(CredentialProvider):
    """Credentials from a netrc file.

    Keys are ``host`` (the password) or ``host:field`` where field is one
    of login, account or password. The file is parsed on first use.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or get_default_netrc_path()
        self._netrc: netrc.netrc | None = None

    def _load(self) -> netrc.netrc | None:
        if self._netrc is None:
            if not self.path.exists():
                logger.debug("No netrc file at %s", self.path)
                return None
            try:
                self._netrc = netrc.netrc(str(self.path))
            except netrc.NetrcParseError as e:
                raise CredentialError(f"Invalid netrc file {self.path}: {e}") from e
            except OSError as e:
                raise CredentialError(f"Failed to read netrc file {self.path}: {e}") from e
        return self._netrc

    def get(self, key: str) -> str | None:
        host, _, field = key.partition(":")
        field = field or "password"
        if field not in NETRC_FIELDS:
            msg = f"Unknown netrc field '{field}' in key '{key}'"
            raise CredentialError(msg)

        store = self._load()
        if store is None:
            return None
        entry = store.authenticators(host)
        if entry is None:
            return None
        login, account, password = entry
        value = {"login": login, "account": account, "password": password}[field]
        return value or None


class ChainCredentialProvider(CredentialProvider):
    """Try several providers in order and return the first hit."""

    def __init__(self, *providers: CredentialProvider) -> None:
        self.providers = providers

    def get(self, key: str) -> str | None:
        for provider in self.providers:
            value = provider.get(key)
            if value is not None:
                return value
        return None
