"""
Document format handlers.

A format handler splits a decoded document into its data and its
``sops`` section on read, and joins them back together on write.

Output is always pretty-printed with sorted keys so that rewritten
files diff cleanly.

This module does NOT:
- Decide which keys are encrypted
- Encrypt or decrypt values
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type, Union

import yaml

from .config import ENVELOPE_KEY
from .errors import InvalidArgument, MalformedDocumentError, UnsupportedFormatError
from .metadata import Metadata
from .utils import is_mapping

logger = logging.getLogger(__name__)

Content = Union[str, bytes]


class DocumentFormat:
    """Shared parse/serialize logic. Subclasses provide the codec."""

    name: str = ""
    extensions: Tuple[str, ...] = ()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, content: Optional[Content]) -> Tuple[Dict[str, Any], Optional[Metadata]]:
        """
        Decode a document and split off its ``sops`` section.

        Raises:
            InvalidArgument: if content is None
            MalformedDocumentError: if the document is not a mapping

        Returns:
            (data without the ``sops`` key, Metadata or None)
        """

        if content is None:
            raise InvalidArgument("content required")

        data = cls._decode(content)
        if not is_mapping(data):
            raise MalformedDocumentError(
                f"{cls.name.upper()} did not parse to a mapping"
            )

        data = dict(data)
        metadata = None
        if ENVELOPE_KEY in data:
            metadata = Metadata.from_dict(data.pop(ENVELOPE_KEY))
        else:
            logger.debug("Document has no '%s' section", ENVELOPE_KEY)

        return data, metadata

    @classmethod
    def serialize(cls, data: Optional[Dict[str, Any]], metadata: Optional[Metadata]) -> str:
        """
        Encode data with the metadata placed under the ``sops`` key.

        Raises:
            InvalidArgument: if data or metadata is missing
        """

        if data is None:
            raise InvalidArgument("data required")
        if metadata is None:
            raise InvalidArgument("metadata required")
        if not is_mapping(data):
            raise InvalidArgument(f"data must be a mapping, got {type(data).__name__}")

        output = dict(data)
        output[ENVELOPE_KEY] = metadata.to_dict()
        return cls._encode(output)

    @classmethod
    def format_name(cls) -> str:
        return cls.name

    @classmethod
    def file_extensions(cls) -> Tuple[str, ...]:
        return cls.extensions

    @classmethod
    def detect(cls, filename: Union[str, Path]) -> bool:
        """Return True if the filename has one of this format's extensions."""
        suffix = Path(filename).suffix.lower().lstrip(".")
        return suffix in cls.extensions

    # ------------------------------------------------------------------
    # Codec hooks
    # ------------------------------------------------------------------

    @classmethod
    def _decode(cls, content: Content) -> Any:
        raise NotImplementedError

    @classmethod
    def _encode(cls, data: Dict[str, Any]) -> str:
        raise NotImplementedError


class JsonFormat(DocumentFormat):
    name = "json"
    extensions = ("json",)

    @classmethod
    def _decode(cls, content: Content) -> Any:
        return json.loads(content)

    @classmethod
    def _encode(cls, data: Dict[str, Any]) -> str:
        return json.dumps(data, indent=4, sort_keys=True, ensure_ascii=False) + "\n"


class StringTimestampLoader(yaml.SafeLoader):
    """SafeLoader that leaves ISO timestamps as strings."""


StringTimestampLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class YamlFormat(DocumentFormat):
    name = "yaml"
    extensions = ("yaml", "yml")

    @classmethod
    def _decode(cls, content: Content) -> Any:
        return yaml.load(content, Loader=StringTimestampLoader)

    @classmethod
    def _encode(cls, data: Dict[str, Any]) -> str:
        return yaml.safe_dump(
            data,
            sort_keys=True,
            default_flow_style=False,
            allow_unicode=True,
        )


FORMATS: Tuple[Type[DocumentFormat], ...] = (JsonFormat, YamlFormat)


def get_format(filename: Union[str, Path]) -> Type[DocumentFormat]:
    """
    Return the handler for a filename, based on its extension.

    Raises:
        UnsupportedFormatError: if no handler matches
    """

    for fmt in FORMATS:
        if fmt.detect(filename):
            return fmt
    raise UnsupportedFormatError(f"Unsupported file format: {filename}")


def load_file(path: Union[str, Path]) -> Tuple[Dict[str, Any], Optional[Metadata]]:
    """Read and parse a document, picking the format from its extension."""
    path = Path(path)
    fmt = get_format(path)

    with path.open("r", encoding="utf-8") as fh:
        content = fh.read()

    logger.debug("Parsing %s as %s", path, fmt.format_name())
    return fmt.parse(content)
