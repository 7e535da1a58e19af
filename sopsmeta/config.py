"""
Global constants and environment handling.

This module is responsible for:
- Defining the envelope wire names and compatibility constants
- Defining default encryption-scope rules
- Reading the few environment switches the tool honours

Nothing in this file should depend on:
- the document format
- the metadata entity
- rule evaluation
- CLI arguments

If something here changes, every file written by the tool changes.
"""

from __future__ import annotations

import logging
import os
from typing import Final, Tuple

# ---------------------------------------------------------------------------
# Tool / format versioning
# ---------------------------------------------------------------------------

# Written into every envelope for compatibility with the Go implementation.
SOPS_VERSION: Final[str] = "3.7.3"
TOOL_VERSION: Final[str] = "0.1.0"

# ---------------------------------------------------------------------------
# Envelope layout
# ---------------------------------------------------------------------------

ENVELOPE_KEY: Final[str] = "sops"

AGE_BACKEND: Final[str] = "age"

# Export order of the key-wrapping lists.
BACKENDS: Final[Tuple[str, ...]] = (
    "kms",
    "gcp_kms",
    "azure_kv",
    "hc_vault",
    "age",
    "pgp",
)

FIELD_LASTMODIFIED: Final[str] = "lastmodified"
FIELD_MAC: Final[str] = "mac"
FIELD_VERSION: Final[str] = "version"
FIELD_UNENCRYPTED_SUFFIX: Final[str] = "unencrypted_suffix"
FIELD_ENCRYPTED_SUFFIX: Final[str] = "encrypted_suffix"
FIELD_UNENCRYPTED_REGEX: Final[str] = "unencrypted_regex"
FIELD_ENCRYPTED_REGEX: Final[str] = "encrypted_regex"

RULE_FIELDS: Final[Tuple[str, ...]] = (
    FIELD_UNENCRYPTED_SUFFIX,
    FIELD_ENCRYPTED_SUFFIX,
    FIELD_UNENCRYPTED_REGEX,
    FIELD_ENCRYPTED_REGEX,
)

SCALAR_FIELDS: Final[Tuple[str, ...]] = (
    FIELD_LASTMODIFIED,
    FIELD_MAC,
    FIELD_VERSION,
) + RULE_FIELDS

# ---------------------------------------------------------------------------
# Default behavior
# ---------------------------------------------------------------------------

DEFAULT_UNENCRYPTED_SUFFIX: Final[str] = "_unencrypted"

LASTMODIFIED_FORMAT: Final[str] = "%Y-%m-%dT%H:%M:%SZ"

# ---------------------------------------------------------------------------
# Environment variable names
# ---------------------------------------------------------------------------

ENV_LOG_LEVEL: Final[str] = "SOPSMETA_LOG_LEVEL"
DEFAULT_LOG_LEVEL: Final[str] = "WARNING"

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_log_level() -> int:
    """
    Return the logging level requested through the environment.

    Unknown level names fall back to the default.

    Returns:
        int: a ``logging`` level constant
    """

    name = os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    if isinstance(level, int):
        return level
    return logging.getLevelName(DEFAULT_LOG_LEVEL)
