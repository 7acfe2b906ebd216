# gcp_log_tail/transform/payload.py

"""
Runtime decoding of typed (``google.protobuf.Any``) log payloads.

The concrete message type of a ``protoPayload`` is only known from its type
URL, so decoding is driven by a registry of message types rather than by
static bindings. Generated ``_pb2`` modules register their descriptors in the
default protobuf descriptor pool when imported; the registry imports the
schema modules the deployment cares about and builds message classes from
that pool on demand.
"""

from collections.abc import Callable, Iterable
import importlib
import logging
from typing import Any

from google.protobuf import any_pb2, descriptor_pool, json_format, message_factory
from google.protobuf.message import DecodeError

from .errors import PayloadDecodeError

logger = logging.getLogger(__name__)

TYPE_URL_PREFIX = "type.googleapis.com/"

# Audit logs and the IAM service data embedded in them.
DEFAULT_SCHEMA_MODULES = (
    "google.cloud.audit.audit_log_pb2",
    "google.iam.v1.logging.audit_data_pb2",
)

Decoder = Callable[[bytes], dict[str, Any]]


def message_name_from_type_url(type_url: str) -> str:
    """Strip the well-known prefix from a type URL."""
    if not type_url.startswith(TYPE_URL_PREFIX):
        raise PayloadDecodeError(f"invalid type URL: {type_url}")
    return type_url[len(TYPE_URL_PREFIX) :]


class TypeRegistry:
    """Maps fully qualified message names to decode functions."""

    def __init__(self, pool: descriptor_pool.DescriptorPool | None = None) -> None:
        self._pool = pool or descriptor_pool.Default()
        self._decoders: dict[str, Decoder] = {}
        self.modules: list[str] = []

    @classmethod
    def with_defaults(cls, extra_modules: Iterable[str] = ()) -> "TypeRegistry":
        """Create a registry with the default schema modules imported."""
        registry = cls()
        for module_name in (*DEFAULT_SCHEMA_MODULES, *extra_modules):
            registry.register_module(module_name)
        return registry

    def register_module(self, module_name: str) -> None:
        """Import a generated schema module so its types become resolvable."""
        if module_name in self.modules:
            return
        importlib.import_module(module_name)
        self.modules.append(module_name)
        logger.debug(f"Registered schema module {module_name}")

    def register(self, type_name: str, decoder: Decoder) -> None:
        """Register an explicit decoder for a message type."""
        self._decoders[type_name] = decoder

    def lookup(self, type_name: str) -> Decoder:
        """Find the decoder for a message type.

        Raises:
            PayloadDecodeError: If the type is not known to the registry.
        """
        decoder = self._decoders.get(type_name)
        if decoder is not None:
            return decoder

        try:
            descriptor = self._pool.FindMessageTypeByName(type_name)
        except KeyError as e:
            raise PayloadDecodeError(f"message type not found: {type_name}") from e

        message_class = message_factory.GetMessageClass(descriptor)
        pool = self._pool

        def _decode(value: bytes) -> dict[str, Any]:
            message = message_class()
            message.ParseFromString(value)
            return json_format.MessageToDict(message, descriptor_pool=pool)

        self._decoders[type_name] = _decode
        return _decode

    def __contains__(self, type_name: str) -> bool:
        try:
            self.lookup(type_name)
        except PayloadDecodeError:
            return False
        return True


class PayloadDecoder:
    """Decodes ``Any`` payloads into generic key/value trees."""

    def __init__(self, registry: TypeRegistry | None = None) -> None:
        self.registry = registry or TypeRegistry.with_defaults()

    def decode(self, payload: any_pb2.Any) -> dict[str, Any]:
        """Decode a typed payload.

        Raises:
            PayloadDecodeError: On a malformed type URL, an unknown type or
                bytes that do not parse as that type.
        """
        type_name = message_name_from_type_url(payload.type_url)
        decoder = self.registry.lookup(type_name)
        try:
            return decoder(payload.value)
        except (DecodeError, TypeError, ValueError) as e:
            raise PayloadDecodeError(
                f"failed to decode payload of type {type_name}: {e}"
            ) from e
