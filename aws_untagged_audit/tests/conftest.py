"""Shared fixtures for the untagged scan tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


class FakeSession:
    """Stands in for ``boto3.Session`` and hands out prepared clients."""

    def __init__(self, clients: Dict[str, Any]) -> None:
        self.clients = clients
        self.created: List[Tuple[str, Dict[str, Any]]] = []

    def client(self, service: str, **kwargs: Any) -> Any:
        self.created.append((service, kwargs))
        return self.clients[service]


class StaticCredentials:
    """Credential provider with a fixed capability answer."""

    def __init__(self, available: bool = True) -> None:
        self.available = available

    def has_credentials(self) -> bool:
        return self.available


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def static_credentials():
    return StaticCredentials
