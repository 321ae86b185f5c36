"""Type aliases for validation inputs."""

import typing

import pydantic


Document = dict[str, typing.Any] | list[typing.Any] | pydantic.BaseModel
"""Type alias for a document that can be validated.

A Document is a JSON-like dict or list, or a Pydantic BaseModel instance
(dumped with ``model_dump`` before validation).
"""

Json = str | bytes | bytearray
"""Type alias for JSON data.

JSON can be provided as a string, bytes, or bytearray.
"""
