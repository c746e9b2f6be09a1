"""Credential resolution and cached boto3 client construction."""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Mapping, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError

logger = logging.getLogger(__name__)

ClientKey = Tuple[str, Optional[str], str, Optional[str]]


class CredentialProvider:
    """Supply either explicit key material or defer to the ambient identity.

    Explicit keys come from ``AWS_ACCESS_KEY_ID``/``AWS_SECRET_ACCESS_KEY``
    (plus an optional ``AWS_SESSION_TOKEN``). Without them a named profile is
    used when given, otherwise boto3's default chain, which resolves the
    execution role on Lambda or an instance profile on EC2.
    """

    def __init__(
        self,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        session_token: Optional[str] = None,
        profile: Optional[str] = None,
    ) -> None:
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.session_token = session_token
        self.profile = profile
        self._session: Optional[boto3.session.Session] = None

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, *, profile: Optional[str] = None
    ) -> "CredentialProvider":
        env = os.environ if environ is None else environ
        return cls(
            access_key_id=env.get("AWS_ACCESS_KEY_ID") or None,
            secret_access_key=env.get("AWS_SECRET_ACCESS_KEY") or None,
            session_token=env.get("AWS_SESSION_TOKEN") or None,
            profile=profile,
        )

    @property
    def explicit(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    def session(self) -> boto3.session.Session:
        """Return the boto3 session shared by every client of the run."""

        if self._session is None:
            if self.explicit:
                self._session = boto3.Session(
                    aws_access_key_id=self.access_key_id,
                    aws_secret_access_key=self.secret_access_key,
                    aws_session_token=self.session_token,
                )
            else:
                self._session = boto3.Session(profile_name=self.profile)
        return self._session

    def has_credentials(self) -> bool:
        """Return ``True`` when some credential source resolves."""

        if self.explicit:
            return True
        try:
            return self.session().get_credentials() is not None
        except BotoCoreError:
            logger.debug("Credential resolution failed", exc_info=True)
            return False


class ClientFactory:
    """Build boto3 clients once per ``(service, api_version, region, endpoint)``."""

    def __init__(
        self,
        session: Optional[boto3.session.Session] = None,
        *,
        config: Optional[Config] = None,
    ) -> None:
        self._session = session
        self._config = config
        self._clients: Dict[ClientKey, Any] = {}

    @property
    def session(self) -> boto3.session.Session:
        if self._session is None:
            self._session = boto3.Session()
        return self._session

    def client(
        self,
        service: str,
        region: str,
        *,
        api_version: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ) -> Any:
        key: ClientKey = (service, api_version, region, endpoint_url)
        client = self._clients.get(key)
        if client is None:
            kwargs: Dict[str, Any] = {"region_name": region}
            if api_version:
                kwargs["api_version"] = api_version
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            if self._config is not None:
                kwargs["config"] = self._config
            client = self.session.client(service, **kwargs)
            self._clients[key] = client
        return client

    def for_region(self, region: str) -> "RegionClients":
        return RegionClients(self, region)


class RegionClients:
    """A :class:`ClientFactory` view bound to one region."""

    def __init__(self, factory: ClientFactory, region: str) -> None:
        self.factory = factory
        self.region = region

    def __call__(
        self,
        service: str,
        api_version: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ) -> Any:
        return self.factory.client(
            service, self.region, api_version=api_version, endpoint_url=endpoint_url
        )


def default_client_config(
    *, connect_timeout: float = 10, read_timeout: float = 30, max_attempts: int = 1
) -> Config:
    """Return the botocore config applied to every client of a run."""

    return Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": max_attempts, "mode": "standard"},
    )


__all__ = [
    "ClientFactory",
    "CredentialProvider",
    "RegionClients",
    "default_client_config",
]
