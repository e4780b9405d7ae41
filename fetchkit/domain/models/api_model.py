"""Base model for API payloads.

Backends are inconsistent about field casing ("totalCount", "TotalCount",
"totalcount"), so ApiModel matches incoming keys to declared fields (or their
aliases) case-insensitively. Numeric strings are accepted for numeric fields
through pydantic's default lax mode.

The decoder applies the same matching to every other shape (plain pydantic
models, dataclasses, TypedDicts); ApiModel also gets it on direct
``model_validate`` calls.
"""

from typing import Any, Dict, Iterable

from pydantic import BaseModel, ConfigDict, model_validator


def match_keys(data: Dict[Any, Any], names: Iterable[str]) -> Dict[Any, Any]:
    """Renames keys of data to the declared names they match ignoring case.

    An exact key wins over a case-folded duplicate. Unknown keys pass through.
    """
    lookup: Dict[str, str] = {}
    for name in names:
        lookup.setdefault(name.lower(), name)
    if not lookup:
        return data

    declared = set(lookup.values())
    remapped: Dict[Any, Any] = {}
    # Exact matches first so they win over case-folded duplicates
    for key, value in data.items():
        if key in declared:
            remapped[key] = value
    for key, value in data.items():
        target = lookup.get(str(key).lower(), key)
        if target not in remapped:
            remapped[target] = value
    return remapped


def model_field_names(model: type) -> Iterable[str]:
    """Yields field names and aliases of a pydantic model class."""
    for name, info in model.model_fields.items():
        yield name
        if info.alias:
            yield info.alias


class ApiModel(BaseModel):
    """Pydantic base for typed decode targets."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _match_field_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return match_keys(data, model_field_names(cls))
