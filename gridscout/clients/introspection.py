"""
Schema introspection for the Central Data ``Series`` types.

GRID's good-faith introspection policy allows ONE ``__type`` (or ``__schema``)
selection per request, so each type is fetched on its own. Results are kept in an
:class:`IntrospectionCache` for ten minutes by default.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from gridscout.clients.base_client import CallContext, UpstreamQueryError
from gridscout.clients.central_data import CentralDataClient
from gridscout.models.enums import IntrospectionShape

TYPE_REF_FIELDS = """
            type {
              kind
              name
              ofType {
                kind
                name
                ofType {
                  kind
                  name
                }
              }
            }"""

SHAPE_SELECTIONS = {
    IntrospectionShape.OBJECT_FIELDS: "fields {\n            name" + TYPE_REF_FIELDS + "\n          }",
    IntrospectionShape.INPUT_FIELDS: "inputFields {\n            name" + TYPE_REF_FIELDS + "\n          }",
    IntrospectionShape.ENUM_VALUES: "enumValues {\n            name\n          }",
}

# Only these types may be introspected through the HTTP surface
SERIES_TYPES: Tuple[Tuple[str, IntrospectionShape], ...] = (
    ("Series", IntrospectionShape.OBJECT_FIELDS),
    ("SeriesFilter", IntrospectionShape.INPUT_FIELDS),
    ("SeriesOrderBy", IntrospectionShape.ENUM_VALUES),
)


class IntrospectionError(Exception):
    """Introspection of one type failed; ``type_name`` says which."""

    def __init__(self, type_name: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.type_name = type_name
        self.status_code = status_code


@dataclass
class _CacheEntry:
    data: Dict[str, Any]
    stored_at: float


class IntrospectionCache:
    """Read-through cache for ``__type`` results keyed by (type name, shape).

    Entries are never mutated once written, so concurrent readers are safe.
    """

    def __init__(self, ttl_seconds: float = 600.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, str], _CacheEntry] = {}

    def get(self, name: str, shape: IntrospectionShape) -> Optional[Dict[str, Any]]:
        key = (name, shape.value)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at > self.ttl_seconds:
            self._entries.pop(key, None)
            return None
        return entry.data

    def set(self, name: str, shape: IntrospectionShape, data: Dict[str, Any]) -> None:
        self._entries[(name, shape.value)] = _CacheEntry(data=data, stored_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def build_type_query(name: str, shape: IntrospectionShape) -> str:
    return (
        f"query Introspect{name} {{\n"
        f'  __type(name: "{name}") {{\n'
        f"    name\n"
        f"    {SHAPE_SELECTIONS[shape]}\n"
        f"  }}\n"
        f"}}\n"
    )


class SchemaIntrospector:
    """Introspects single types through Central Data, reading through the cache."""

    def __init__(self, client: CentralDataClient, cache: IntrospectionCache):
        self.client = client
        self.cache = cache

    async def introspect_type(
        self, name: str, shape: IntrospectionShape, ctx: Optional[CallContext] = None
    ) -> Dict[str, Any]:
        cached = self.cache.get(name, shape)
        if cached is not None:
            return cached

        try:
            data = await self.client.query(
                build_type_query(name, shape), ctx=ctx, where=f"introspect_{name}"
            )
        except UpstreamQueryError as e:
            raise IntrospectionError(name, f"GraphQL error for {name}: {', '.join(e.messages)}") from e

        type_data = data.get("__type")
        if not type_data:
            raise IntrospectionError(name, f"Type {name} not found in schema")

        self.cache.set(name, shape, type_data)
        return type_data

    async def introspect_series_types(self, ctx: Optional[CallContext] = None) -> Dict[str, Any]:
        """``Series``, ``SeriesFilter`` and ``SeriesOrderBy``, one request each."""

        async def fetch(name: str, shape: IntrospectionShape) -> Dict[str, Any]:
            try:
                return await self.introspect_type(name, shape, ctx=ctx)
            except IntrospectionError:
                raise
            except Exception as e:
                status = getattr(e, "status_code", None)
                raise IntrospectionError(name, f"{name}: {e}", status) from e

        results = await asyncio.gather(
            *(fetch(name, shape) for name, shape in SERIES_TYPES), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        series_type, series_filter, series_order_by = results
        logger.debug("Introspected Series, SeriesFilter and SeriesOrderBy")
        return {
            "seriesType": series_type,
            "seriesFilter": series_filter,
            "seriesOrderBy": series_order_by,
        }


def _type_name(type_ref: Optional[Dict[str, Any]]) -> Optional[str]:
    ref = type_ref or {}
    of_type = ref.get("ofType") or {}
    return ref.get("name") or of_type.get("name") or (of_type.get("ofType") or {}).get("name")


def summarize_fields(fields: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Flattens introspected fields to ``{name, type: {kind, name, ofType?}}``."""
    summary = []
    for field in fields or []:
        type_ref = field.get("type") or {}
        entry: Dict[str, Any] = {
            "name": field.get("name"),
            "type": {"kind": type_ref.get("kind"), "name": _type_name(type_ref)},
        }
        of_type = type_ref.get("ofType")
        if of_type:
            entry["type"]["ofType"] = {
                "kind": of_type.get("kind"),
                "name": of_type.get("name") or (of_type.get("ofType") or {}).get("name"),
            }
        summary.append(entry)
    return summary
