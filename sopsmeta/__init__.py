"""
sops metadata envelope

Reads and writes the ``sops`` section of encrypted structured documents:
the recipients holding the data key, the MAC, versioning, and the rules
that decide which keys of the document are encrypted.
"""

__version__ = "0.1.0"

from .config import SOPS_VERSION, DEFAULT_UNENCRYPTED_SUFFIX, BACKENDS
from .errors import (
    SopsMetaError,
    InvalidArgument,
    MalformedEnvelopeError,
    MalformedDocumentError,
    UnsupportedFormatError,
)
from .metadata import Metadata, KeyWrapping
from .rules import EncryptionRules, RuleEngine, RuleDecision
from .formats import JsonFormat, YamlFormat, get_format, load_file

__all__ = [
    "SOPS_VERSION",
    "DEFAULT_UNENCRYPTED_SUFFIX",
    "BACKENDS",
    "SopsMetaError",
    "InvalidArgument",
    "MalformedEnvelopeError",
    "MalformedDocumentError",
    "UnsupportedFormatError",
    "Metadata",
    "KeyWrapping",
    "EncryptionRules",
    "RuleEngine",
    "RuleDecision",
    "JsonFormat",
    "YamlFormat",
    "get_format",
    "load_file",
]
