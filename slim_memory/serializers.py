"""
slim_memory — Value encodings shared by the drivers.

``pickle`` is the default since tag member lists and arbitrary
Python values must come back unchanged. ``json`` and ``msgpack``
trade that for values other languages can read.
"""

from __future__ import annotations

import json
import logging
import pickle
from typing import Any, Dict, Tuple, Type

from .faults import CacheConfigFault, CacheSerializationFault

logger = logging.getLogger("slim_memory.serializers")


class CacheSerializer:
    """
    Encoder base. Subclasses implement ``_dump``/``_load`` and list
    the exceptions their library raises in ``errors``.
    """

    name = "base"
    errors: Tuple[Type[BaseException], ...] = ()

    def serialize(self, value: Any) -> bytes:
        try:
            return self._dump(value)
        except self.errors as e:
            raise self._fault("serialize", e) from e

    def deserialize(self, data: bytes) -> Any:
        try:
            return self._load(data)
        except self.errors as e:
            raise self._fault("deserialize", e) from e

    def _fault(self, operation: str, exc: BaseException) -> CacheSerializationFault:
        logger.warning(f"{self.name} {operation} failed: {exc}")
        return CacheSerializationFault(operation, f"{self.name}: {exc}")

    def _dump(self, value: Any) -> bytes:
        raise NotImplementedError

    def _load(self, data: bytes) -> Any:
        raise NotImplementedError


class PickleCacheSerializer(CacheSerializer):
    """Any picklable object. Only read data written by trusted processes."""

    name = "pickle"
    errors = (pickle.PickleError, TypeError, AttributeError, EOFError)

    def _dump(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)

    def _load(self, data: bytes) -> Any:
        return pickle.loads(data)


class JsonCacheSerializer(CacheSerializer):
    """UTF-8 JSON. Tuples read back as lists, unknown objects as ``str()``."""

    name = "json"
    errors = (TypeError, ValueError, OverflowError)

    def _dump(self, value: Any) -> bytes:
        return json.dumps(value, default=str, ensure_ascii=False).encode("utf-8")

    def _load(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


class MsgpackCacheSerializer(CacheSerializer):
    """MessagePack. Needs the ``msgpack`` extra."""

    name = "msgpack"
    errors = (TypeError, ValueError)

    def _dump(self, value: Any) -> bytes:
        import msgpack
        return msgpack.packb(value, use_bin_type=True, default=str)

    def _load(self, data: bytes) -> Any:
        import msgpack
        return msgpack.unpackb(data, raw=False)


class SerdeAdapter:
    """
    Bridge a cache serializer to pymemcache's ``serde`` protocol.

    Every value is stored with ``FLAG_SERIALIZED`` so foreign writers
    using plain flags are read back as raw bytes.
    """

    FLAG_SERIALIZED = 1

    def __init__(self, serializer: CacheSerializer):
        self.serializer = serializer

    def serialize(self, key: Any, value: Any) -> Tuple[bytes, int]:
        return self.serializer.serialize(value), self.FLAG_SERIALIZED

    def deserialize(self, key: Any, value: bytes, flags: int) -> Any:
        if flags & self.FLAG_SERIALIZED:
            return self.serializer.deserialize(value)
        return value


SERIALIZERS: Dict[str, Type[CacheSerializer]] = {
    cls.name: cls
    for cls in (PickleCacheSerializer, JsonCacheSerializer, MsgpackCacheSerializer)
}


def get_serializer(name: str = "pickle") -> CacheSerializer:
    """
    Instantiate a serializer by name.

    Raises:
        CacheConfigFault: ``name`` is not one of ``SERIALIZERS``.
    """
    try:
        return SERIALIZERS[name]()
    except KeyError:
        raise CacheConfigFault(
            f"unknown serializer '{name}', options: {sorted(SERIALIZERS)}"
        ) from None
