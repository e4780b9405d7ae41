"""JSON value types and decode-shape markers."""

from typing import Any, Dict, List, Union

JsonScalar = Union[str, int, float, bool, None]
JsonValue = Union[JsonScalar, Dict[str, Any], List[Any]]


class RawJson:
    """Marker shape: decode a body into a plain JSON tree without typing.

    Pass the class itself (not an instance) wherever a ``shape`` is expected.
    """

    def __init__(self) -> None:
        raise TypeError("RawJson is a marker and cannot be instantiated")
