"""
String converters: response body text to typed payloads and back.

Two implementations of the :class:`StringConverter` protocol:

* :class:`JsonStringConverter` — stdlib ``json``; untyped, returns plain
  dicts/lists/scalars.
* :class:`PydanticStringConverter` — pydantic ``TypeAdapter``; validates into
  the requested type (models, dataclasses, ``list[int]``, ...). The default
  for :class:`~courier.http.sender.HttpSender`.

Both raise :class:`~courier.core.errors.DecodeError` on failure, which the
sender records on the RequestUnit instead of letting it escape.

Example:
    >>> converter = PydanticStringConverter()
    >>> converter.convert_from_string('{"a": 1}', dict[str, int])
    {'a': 1}
    >>> converter.convert_from_model({"a": 1})
    '{"a":1}'
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, Protocol

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from courier.core.errors import DecodeError


class StringConverter(Protocol):
    """Converts body text to a model and a model to body text."""

    def convert_from_string(self, value: str, response_type: Any = None) -> Any:
        ...

    def convert_from_model(self, model: Any) -> str:
        ...


def _type_name(response_type: Any) -> str:
    return getattr(response_type, "__name__", None) or repr(response_type)


class JsonStringConverter:
    """stdlib ``json`` converter. ``response_type`` is ignored."""

    def __init__(self, **dumps_kwargs: Any) -> None:
        self._dumps_kwargs = dumps_kwargs

    def convert_from_string(self, value: str, response_type: Any = None) -> Any:
        if value is None or not value.strip():
            raise DecodeError("Value cannot be null or whitespace.")
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Failed to deserialize JSON: {e}", cause=e) from e

    def convert_from_model(self, model: Any) -> str:
        try:
            return json.dumps(model, **self._dumps_kwargs)
        except (TypeError, ValueError) as e:
            raise DecodeError(
                f"Failed to serialize object of type '{type(model).__name__}': {e}", cause=e
            ) from e


@lru_cache(maxsize=256)
def _adapter(response_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(response_type)


class PydanticStringConverter:
    """pydantic ``TypeAdapter`` converter; ``response_type=None`` means ``Any``."""

    def convert_from_string(self, value: str, response_type: Any = None) -> Any:
        if value is None or not value.strip():
            raise DecodeError("Value cannot be null or whitespace.")
        target = Any if response_type is None else response_type
        try:
            return _adapter(target).validate_json(value)
        except PydanticValidationError as e:
            raise DecodeError(
                f"Failed to deserialize object of type '{_type_name(target)}': {e}", cause=e
            ) from e

    def convert_from_model(self, model: Any) -> str:
        try:
            return _adapter(type(model)).dump_json(model).decode("utf-8")
        except Exception as e:
            raise DecodeError(
                f"Failed to serialize object of type '{type(model).__name__}': {e}", cause=e
            ) from e


__all__ = ["StringConverter", "JsonStringConverter", "PydanticStringConverter"]
