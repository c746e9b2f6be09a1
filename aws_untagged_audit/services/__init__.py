"""Scanner unit contract, per-region scan context and the unit registry."""
from __future__ import annotations

import importlib
import pkgutil
from types import MappingProxyType
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
)

from botocore.exceptions import OperationNotPageableError

from ..clients import RegionClients
from ..records import GLOBAL_REGION, ScanRecord
from ..tags import has_no_tags
from ..utils import (
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_SIZE,
    Page,
    PageFetcher,
    PageRequest,
    first_present,
    paginate,
    run_blocking,
)


class ScanContext:
    """Everything a scanner unit needs to list one region."""

    def __init__(
        self,
        region: str,
        clients: RegionClients,
        *,
        home_region: str = "us-east-1",
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
        page_timeout: Optional[float] = None,
    ) -> None:
        self.region = region
        self.clients = clients
        self.home_region = home_region
        self.page_size = page_size
        self.max_pages = max_pages
        self.page_timeout = page_timeout

    @property
    def is_home_region(self) -> bool:
        return self.region == self.home_region

    def client(
        self,
        service: str,
        api_version: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ) -> Any:
        return self.clients(service, api_version=api_version, endpoint_url=endpoint_url)

    async def paginate(self, fetch_page: PageFetcher) -> List[Any]:
        return await paginate(
            fetch_page,
            page_size=self.page_size,
            max_pages=self.max_pages,
            page_timeout=self.page_timeout,
        )

    async def call(self, func: Callable[..., Any], **kwargs: Any) -> Any:
        """Run a single, unpaginated API call off the event loop."""

        return await run_blocking(func, **kwargs)

    def untagged(
        self,
        service: str,
        items: Iterable[Mapping[str, Any]],
        id_fields: Sequence[str],
        *,
        region: Optional[str] = None,
        where: Optional[Callable[[Mapping[str, Any]], bool]] = None,
    ) -> List[ScanRecord]:
        """Build records for the items of *items* that carry no tags.

        ``id_fields`` is tried in order and the first non-empty value becomes
        the record id. ``where`` adds a unit-specific filter.
        """

        records: List[ScanRecord] = []
        for item in items:
            if not has_no_tags(item):
                continue
            if where is not None and not where(item):
                continue
            records.append(
                ScanRecord(
                    service=service,
                    id=first_present(item, id_fields),
                    region=region or self.region,
                )
            )
        return records


def aws_pager(
    client: Any,
    operation: str,
    result_key: str,
    *,
    extract: Optional[Callable[[Mapping[str, Any]], Iterable[Any]]] = None,
    **params: Any,
) -> PageFetcher:
    """Adapt a boto3 operation to :func:`paginate` through its paginator.

    Each page asks the paginator for at most ``request.limit`` items and hands
    its resume token back as the cursor. Operations without a paginator are
    called once. ``extract`` replaces the plain ``response[result_key]``
    lookup for nested payloads.
    """

    def items_of(response: Mapping[str, Any]) -> List[Any]:
        if extract is not None:
            return list(extract(response))
        return list(response.get(result_key) or [])

    def fetch(request: PageRequest) -> Page:
        try:
            paginator = client.get_paginator(operation)
        except OperationNotPageableError:
            response = getattr(client, operation)(**params)
            return Page(items=items_of(response), has_more=False)

        config: Dict[str, Any] = {"MaxItems": request.limit}
        if request.cursor:
            config["StartingToken"] = request.cursor
        response = paginator.paginate(PaginationConfig=config, **params).build_full_result()
        token = response.get("NextToken") or None
        return Page(items=items_of(response), has_more=bool(token), next_cursor=token)

    return fetch


ScannerUnit = Callable[[ScanContext], Awaitable[List[ScanRecord]]]


class ScannerRegistry:
    """Ordered registry of scanner units keyed by a stable service key."""

    def __init__(self) -> None:
        self._units: Dict[str, ScannerUnit] = {}

    @staticmethod
    def _normalize(name: str) -> str:
        if not name or not name.strip():
            raise ValueError("Scanner key must be a non-empty string")
        return name.strip()

    def register(self, name: str) -> Callable[[ScannerUnit], ScannerUnit]:
        """Return a decorator that registers *name* for the wrapped unit."""

        normalized = self._normalize(name)

        def decorator(func: ScannerUnit) -> ScannerUnit:
            if normalized in self._units and self._units[normalized] is not func:
                raise ValueError(f"Scanner '{name}' is already registered")
            self._units[normalized] = func
            return func

        return decorator

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str) or not name.strip():
            return False
        return self._normalize(name) in self._units

    def __getitem__(self, name: str) -> ScannerUnit:
        return self._units[self._normalize(name)]

    def __len__(self) -> int:
        return len(self._units)

    def keys(self) -> Iterator[str]:
        return iter(self._units)

    def items(self) -> Iterator[tuple[str, ScannerUnit]]:
        return iter(self._units.items())

    def as_mapping(self) -> Mapping[str, ScannerUnit]:
        return MappingProxyType(self._units)

    def select(self, names: Optional[Iterable[str]] = None) -> Dict[str, ScannerUnit]:
        """Return the ordered subset of units for *names* (all when ``None``)."""

        if names is None:
            return dict(self._units)

        selected: List[str] = []
        for name in names:
            if name not in self:
                valid = ", ".join(self._units)
                raise ValueError(f"Unknown scanner '{name}'. Valid scanners: {valid}")
            selected.append(self._normalize(name))
        return {key: self._units[key] for key in dict.fromkeys(selected)}


SCANNER_REGISTRY = ScannerRegistry()
register_scanner = SCANNER_REGISTRY.register


def get_scanners() -> Mapping[str, ScannerUnit]:
    """Return a read-only mapping of registered scanner units."""

    return SCANNER_REGISTRY.as_mapping()


def _import_scanner_modules() -> None:
    """Import modules that register scanner units via decorators."""

    package_name = __name__
    package_paths = getattr(__spec__, "submodule_search_locations", None)
    if not package_paths:
        return

    for module_info in pkgutil.iter_modules(package_paths):
        module_name = module_info.name
        if module_name.startswith("_"):
            continue
        importlib.import_module(f"{package_name}.{module_name}")


_import_scanner_modules()

SCANNERS: Mapping[str, ScannerUnit] = get_scanners()


__all__ = [
    "GLOBAL_REGION",
    "SCANNERS",
    "SCANNER_REGISTRY",
    "ScanContext",
    "ScannerRegistry",
    "ScannerUnit",
    "aws_pager",
    "get_scanners",
    "register_scanner",
]
