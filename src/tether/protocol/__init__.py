"""The ResourceProvider protocol: messages, provider base class and dispatch."""

from tether.protocol.dispatch import METHODS, ProviderDispatcher
from tether.protocol.messages import (
    CheckFailure,
    CheckRequest,
    CheckResponse,
    ConfigureErrorMissingKeys,
    ConfigureRequest,
    CreateRequest,
    CreateResponse,
    DeleteRequest,
    DiffChanges,
    DiffRequest,
    DiffResponse,
    Empty,
    InvokeRequest,
    InvokeResponse,
    MissingKey,
    PluginInfo,
    ReadRequest,
    ReadResponse,
    UpdateRequest,
    UpdateResponse,
    failures_from_validation_error,
)
from tether.protocol.properties import (
    PropertyMap,
    PropertyValue,
    copy_properties,
    from_model,
    property_diff,
    to_model,
    validate_properties,
)
from tether.protocol.service import ResourceProvider, provider_function

__all__ = [
    "METHODS",
    "ProviderDispatcher",
    "ResourceProvider",
    "provider_function",
    # Messages
    "CheckFailure",
    "CheckRequest",
    "CheckResponse",
    "ConfigureErrorMissingKeys",
    "ConfigureRequest",
    "CreateRequest",
    "CreateResponse",
    "DeleteRequest",
    "DiffChanges",
    "DiffRequest",
    "DiffResponse",
    "Empty",
    "InvokeRequest",
    "InvokeResponse",
    "MissingKey",
    "PluginInfo",
    "ReadRequest",
    "ReadResponse",
    "UpdateRequest",
    "UpdateResponse",
    "failures_from_validation_error",
    # Property bags
    "PropertyMap",
    "PropertyValue",
    "copy_properties",
    "from_model",
    "property_diff",
    "to_model",
    "validate_properties",
]
