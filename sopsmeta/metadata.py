"""
The ``sops`` metadata section: loading, normalization, and export.

This module answers one question:
    "Who can open this document, and which of its keys are encrypted?"

Responsibilities:
- Build a Metadata object from a decoded ``sops`` mapping
- Normalize defaults (empty backend lists, version, unencrypted suffix)
- Record key wrappings, the MAC and the modification time
- Export back to a plain mapping for the format layer

This module does NOT:
- Encrypt, decrypt or verify anything
- Compute the MAC
- Walk the document tree
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .config import (
    AGE_BACKEND,
    BACKENDS,
    DEFAULT_UNENCRYPTED_SUFFIX,
    FIELD_ENCRYPTED_REGEX,
    FIELD_ENCRYPTED_SUFFIX,
    FIELD_LASTMODIFIED,
    FIELD_MAC,
    FIELD_UNENCRYPTED_REGEX,
    FIELD_UNENCRYPTED_SUFFIX,
    FIELD_VERSION,
    RULE_FIELDS,
    SCALAR_FIELDS,
    SOPS_VERSION,
)
from .errors import InvalidArgument, MalformedEnvelopeError
from .rules import EncryptionRules, RuleDecision, RuleEngine, compile_pattern
from .utils import is_mapping, is_non_empty_str, none_if_empty, utc_timestamp

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyWrapping:
    """The data key encrypted for one recipient."""

    recipient: str
    enc: str

    def __post_init__(self) -> None:
        if not is_non_empty_str(self.recipient):
            raise InvalidArgument("recipient required")
        if not is_non_empty_str(self.enc):
            raise InvalidArgument("enc required")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyWrapping":
        return cls(recipient=data.get("recipient"), enc=data.get("enc"))

    def to_dict(self) -> Dict[str, str]:
        return {"recipient": self.recipient, "enc": self.enc}


@dataclass
class Metadata:
    # Backend lists, in export order. Reserved backends keep their
    # entries exactly as read.
    kms: List[Any] = field(default_factory=list)
    gcp_kms: List[Any] = field(default_factory=list)
    azure_kv: List[Any] = field(default_factory=list)
    hc_vault: List[Any] = field(default_factory=list)
    age: List[KeyWrapping] = field(default_factory=list)
    pgp: List[Any] = field(default_factory=list)

    mac: Optional[str] = None
    lastmodified: Optional[str] = None
    version: str = SOPS_VERSION

    unencrypted_suffix: Optional[str] = DEFAULT_UNENCRYPTED_SUFFIX
    encrypted_suffix: Optional[str] = None
    unencrypted_regex: Optional[str] = None
    encrypted_regex: Optional[str] = None

    # Unrecognized keys kept by from_dict(preserve_unknown=True).
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        for name in RULE_FIELDS:
            setattr(self, name, none_if_empty(getattr(self, name)))
        self.version = self._parse_version(self.version)

        compile_pattern(self.unencrypted_regex, FIELD_UNENCRYPTED_REGEX)
        compile_pattern(self.encrypted_regex, FIELD_ENCRYPTED_REGEX)

    # ------------------------------------------------------------------
    # Loading API
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(
        cls, data: Any, preserve_unknown: bool = False
    ) -> Optional["Metadata"]:
        """
        Build Metadata from a decoded ``sops`` section.

        Args:
            data: the value found under the ``sops`` key
            preserve_unknown: keep unrecognized keys so that to_dict()
                writes them back

        Raises:
            MalformedEnvelopeError: if a backend list or age entry has the
                wrong shape
            InvalidArgument: if a regex rule does not compile

        Returns:
            Metadata, or None if ``data`` is not a mapping
        """

        if not is_mapping(data):
            logger.debug("No metadata: expected a mapping, got %s", type(data).__name__)
            return None

        backends = {name: cls._parse_backend(name, data.get(name)) for name in BACKENDS}

        extra: Dict[str, Any] = {}
        unknown = [k for k in data if k not in BACKENDS and k not in SCALAR_FIELDS]
        if unknown:
            if preserve_unknown:
                extra = {k: copy.deepcopy(data[k]) for k in unknown}
            else:
                logger.debug("Dropping unrecognized metadata keys: %s", ", ".join(map(str, unknown)))

        return cls(
            **backends,
            mac=cls._parse_scalar(data, FIELD_MAC),
            lastmodified=cls._parse_lastmodified(data.get(FIELD_LASTMODIFIED)),
            version=cls._parse_version(data.get(FIELD_VERSION)),
            unencrypted_suffix=cls._parse_scalar(data, FIELD_UNENCRYPTED_SUFFIX),
            encrypted_suffix=cls._parse_scalar(data, FIELD_ENCRYPTED_SUFFIX),
            unencrypted_regex=cls._parse_scalar(data, FIELD_UNENCRYPTED_REGEX),
            encrypted_regex=cls._parse_scalar(data, FIELD_ENCRYPTED_REGEX),
            extra=extra,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_backend(name: str, raw: Any) -> List[Any]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise MalformedEnvelopeError(
                f"Backend '{name}' must be a list, got {type(raw).__name__}"
            )

        if name != AGE_BACKEND:
            return copy.deepcopy(raw)

        entries: List[KeyWrapping] = []
        for idx, entry in enumerate(raw):
            if not is_mapping(entry):
                raise MalformedEnvelopeError(f"age entry #{idx} is not a mapping")
            try:
                entries.append(KeyWrapping.from_dict(entry))
            except InvalidArgument as e:
                raise MalformedEnvelopeError(f"age entry #{idx}: {e}") from e
        return entries

    @staticmethod
    def _parse_scalar(data: Dict[str, Any], name: str) -> Optional[str]:
        value = data.get(name)
        if value is None or isinstance(value, str):
            return value
        raise MalformedEnvelopeError(
            f"'{name}' must be a string, got {type(value).__name__}"
        )

    @staticmethod
    def _parse_lastmodified(value: Any) -> Optional[str]:
        # YAML loaders turn unquoted ISO timestamps into datetimes.
        if isinstance(value, datetime):
            return utc_timestamp(value)
        return Metadata._parse_scalar({FIELD_LASTMODIFIED: value}, FIELD_LASTMODIFIED)

    @staticmethod
    def _parse_version(value: Any) -> str:
        if value is None or value == "":
            return SOPS_VERSION
        return str(value)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a plain mapping for the ``sops`` section.

        Every backend list is present, even when empty. Optional scalars
        are left out when unset.
        """

        out: Dict[str, Any] = {}

        for name in BACKENDS:
            out[name] = [
                entry.to_dict() if isinstance(entry, KeyWrapping) else copy.deepcopy(entry)
                for entry in getattr(self, name)
            ]

        if self.lastmodified is not None:
            out[FIELD_LASTMODIFIED] = self.lastmodified
        if self.mac is not None:
            out[FIELD_MAC] = self.mac
        out[FIELD_VERSION] = self.version if self.version is not None else SOPS_VERSION

        for name in RULE_FIELDS:
            value = none_if_empty(getattr(self, name))
            if value is not None:
                out[name] = value

        for key, value in self.extra.items():
            if key not in out:
                out[key] = copy.deepcopy(value)

        return out

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def update_lastmodified(self, now: Optional[datetime] = None) -> "Metadata":
        """Set ``lastmodified`` to the current UTC time. Returns self."""
        self.lastmodified = utc_timestamp(now)
        return self

    def add_key_wrapping(self, backend: str, recipient: str, enc: str) -> "Metadata":
        """
        Append the data key encrypted for ``recipient`` to a backend list.

        Entries are never deduplicated. Returns self.

        Raises:
            InvalidArgument: if the backend is unknown or recipient/enc is empty
        """

        entries = self._backend_list(backend)
        wrapping = KeyWrapping(recipient=recipient, enc=enc)
        entries.append(wrapping)

        logger.debug("Added %s key wrapping for %s", backend, recipient)
        return self

    def add_age_recipient(self, recipient: str, enc: str) -> "Metadata":
        return self.add_key_wrapping(AGE_BACKEND, recipient, enc)

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    def list_key_wrappings(self, backend: str) -> Tuple[Any, ...]:
        """Return a snapshot of the entries for one backend."""
        return tuple(
            entry if isinstance(entry, KeyWrapping) else copy.deepcopy(entry)
            for entry in self._backend_list(backend)
        )

    def get_age_encrypted_keys(self) -> Tuple[KeyWrapping, ...]:
        return self.list_key_wrappings(AGE_BACKEND)

    def recipients(self, backend: str) -> List[str]:
        return [
            entry.recipient
            for entry in self._backend_list(backend)
            if isinstance(entry, KeyWrapping)
        ]

    @property
    def has_mac(self) -> bool:
        return self.mac is not None

    @property
    def rules(self) -> EncryptionRules:
        return EncryptionRules(
            unencrypted_suffix=self.unencrypted_suffix,
            encrypted_suffix=self.encrypted_suffix,
            unencrypted_regex=self.unencrypted_regex,
            encrypted_regex=self.encrypted_regex,
        )

    def explain_key(self, key: str) -> RuleDecision:
        return RuleEngine(self.rules).evaluate(key)

    def should_encrypt_key(self, key: str) -> bool:
        """
        Decide whether the value under ``key`` is encrypted.

        Raises:
            InvalidArgument: if a regex rule does not compile
        """

        return self.explain_key(key).encrypt

    def _backend_list(self, backend: str) -> List[Any]:
        if backend not in BACKENDS:
            raise InvalidArgument(f"Unknown key backend: {backend!r}")
        return getattr(self, backend)
