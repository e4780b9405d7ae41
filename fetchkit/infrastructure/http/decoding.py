"""Body decoding rules shared by the API client and the content loader.

Shapes:
- ``str``      -> body text verbatim
- ``bytes``    -> body bytes verbatim
- ``RawJson``  -> plain parsed JSON tree
- anything else pydantic can build a TypeAdapter for (models, List[Model],
  Dict[str, int], dataclasses, TypedDicts, ...) -> validated instance

An empty body decodes to None for every shape except the verbatim ones.

Field names are matched case-insensitively for every object shape, at any
nesting depth, before pydantic validates the value.
"""

import dataclasses
import json
import logging
from collections import abc
from functools import lru_cache
from types import UnionType
from typing import Annotated, Any, Dict, Optional, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel, TypeAdapter
from typing_extensions import is_typeddict

from fetchkit.domain.models.api_model import match_keys
from fetchkit.domain.models.json_types import RawJson

logger = logging.getLogger(__name__)

_SEQUENCE_ORIGINS = (list, set, frozenset, abc.Sequence, abc.MutableSequence, abc.Set, abc.MutableSet, abc.Iterable)
_MAPPING_ORIGINS = (dict, abc.Mapping, abc.MutableMapping)


@lru_cache(maxsize=256)
def _cached_adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


def adapter_for(shape: Any) -> TypeAdapter:
    """Returns a (cached where possible) TypeAdapter for shape."""
    try:
        return _cached_adapter(shape)
    except TypeError:
        # Unhashable shape (e.g. an Annotated with a dict in its metadata)
        return TypeAdapter(shape)


# --- Case-insensitive field matching ---

def _resolved_hints(shape: Any) -> Dict[str, Any]:
    try:
        return get_type_hints(shape)
    except (NameError, TypeError):
        return {k: v for k, v in getattr(shape, "__annotations__", {}).items() if not isinstance(v, str)}


def _object_fields(shape: Any) -> Optional[Dict[str, Any]]:
    """Maps each accepted key (name or alias) of an object shape to its type."""
    if isinstance(shape, type) and issubclass(shape, BaseModel):
        fields: Dict[str, Any] = {}
        for name, info in shape.model_fields.items():
            fields[name] = info.annotation
            if info.alias:
                fields[info.alias] = info.annotation
        return fields
    if isinstance(shape, type) and dataclasses.is_dataclass(shape):
        hints = _resolved_hints(shape)
        return {f.name: hints.get(f.name, Any) for f in dataclasses.fields(shape)}
    if is_typeddict(shape):
        return _resolved_hints(shape)
    return None


def _is_object_shape(shape: Any) -> bool:
    while get_origin(shape) is Annotated:
        shape = get_args(shape)[0]
    origin = get_origin(shape)
    return _object_fields(shape) is not None or (origin is not None and _object_fields(origin) is not None)


def fold_field_names(value: Any, shape: Any) -> Any:
    """Renames object keys in a parsed JSON value to the fields of shape they match ignoring case."""
    if shape is Any or shape is RawJson or value is None:
        return value

    origin = get_origin(shape)
    args = get_args(shape)

    if origin is Annotated:
        return fold_field_names(value, args[0])

    if origin is Union or origin is UnionType:
        members = [a for a in args if a is not type(None)]
        if isinstance(value, dict):
            members = [a for a in members if _is_object_shape(a)] or members
        return fold_field_names(value, members[0]) if members else value

    if isinstance(value, list):
        if origin is tuple and args:
            if len(args) == 2 and args[1] is Ellipsis:
                return [fold_field_names(v, args[0]) for v in value]
            return [fold_field_names(v, a) for v, a in zip(value, args)] + value[len(args):]
        if origin in _SEQUENCE_ORIGINS and args:
            return [fold_field_names(v, args[0]) for v in value]
        return value

    if not isinstance(value, dict):
        return value

    if origin in _MAPPING_ORIGINS:
        if len(args) == 2:
            return {k: fold_field_names(v, args[1]) for k, v in value.items()}
        return value

    # Parametrised generic models keep their concrete fields on the shape itself
    fields = _object_fields(shape)
    if fields is None and origin is not None:
        fields = _object_fields(origin)
    if fields is None:
        return value

    matched = match_keys(value, fields)
    return {k: fold_field_names(v, fields[k]) if k in fields else v for k, v in matched.items()}


# --- Decoding ---

def decode_body(content: bytes, shape: Any = RawJson, encoding: str = "utf-8") -> Optional[Any]:
    """Decodes raw response bytes into shape.

    Raises:
        json.JSONDecodeError: If shape is RawJson and the body is not JSON.
        pydantic.ValidationError: If the body does not match shape.
    """
    if shape is str:
        return content.decode(encoding)
    if shape is bytes:
        return content
    if not content:
        return None
    if shape is RawJson:
        return json.loads(content)
    try:
        tree = json.loads(content)
    except ValueError:
        # Malformed JSON for a typed shape is reported by pydantic
        return adapter_for(shape).validate_json(content)
    return decode_value(tree, shape)


def decode_value(value: Any, shape: Any = RawJson) -> Any:
    """Validates an already parsed JSON value against shape."""
    if shape is RawJson:
        return value
    return adapter_for(shape).validate_python(fold_field_names(value, shape))


def decode_response(response: Any, shape: Any = RawJson) -> Optional[Any]:
    """Decodes an httpx response, honouring the charset it declares for text."""
    if shape is str:
        return response.text
    return decode_body(response.content, shape, encoding=response.encoding or "utf-8")
