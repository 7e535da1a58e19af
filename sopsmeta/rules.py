"""
Encryption-scope rule evaluation.

Given a key name and the four rule fields of an envelope, this module decides:
- whether the value under that key is encrypted
- which rule made the decision

Rules DO NOT perform actions. They only return decisions.

Order of evaluation (first applicable rule wins):
1. unencrypted_suffix matches        -> plaintext
2. encrypted_suffix set              -> encrypt only if it matches
3. unencrypted_regex matches         -> plaintext
4. encrypted_regex set               -> encrypt only if it matches
5. nothing applies                   -> encrypt
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from .config import (
    FIELD_ENCRYPTED_REGEX,
    FIELD_ENCRYPTED_SUFFIX,
    FIELD_UNENCRYPTED_REGEX,
    FIELD_UNENCRYPTED_SUFFIX,
)
from .errors import InvalidArgument
from .utils import none_if_empty

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncryptionRules:
    unencrypted_suffix: Optional[str] = None
    encrypted_suffix: Optional[str] = None
    unencrypted_regex: Optional[str] = None
    encrypted_regex: Optional[str] = None

    def __post_init__(self) -> None:
        # An empty rule would match every key; it means "not configured".
        for name in (
            FIELD_UNENCRYPTED_SUFFIX,
            FIELD_ENCRYPTED_SUFFIX,
            FIELD_UNENCRYPTED_REGEX,
            FIELD_ENCRYPTED_REGEX,
        ):
            object.__setattr__(self, name, none_if_empty(getattr(self, name)))


@dataclass(frozen=True)
class RuleDecision:
    encrypt: bool
    rule: Optional[str] = None


def compile_pattern(pattern: Optional[str], field_name: str) -> Optional[re.Pattern[str]]:
    """
    Compile a rule pattern, reporting failures as InvalidArgument.

    Raises:
        InvalidArgument: if the pattern is not a string or not a valid regex
    """

    if pattern is None:
        return None
    if not isinstance(pattern, str):
        raise InvalidArgument(
            f"{field_name} must be a string, got {type(pattern).__name__}"
        )
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidArgument(f"Invalid {field_name} {pattern!r}: {e}") from e


class RuleEngine:
    def __init__(self, rules: EncryptionRules):
        self.rules = rules
        self._unencrypted_re = compile_pattern(
            rules.unencrypted_regex, FIELD_UNENCRYPTED_REGEX
        )
        self._encrypted_re = compile_pattern(
            rules.encrypted_regex, FIELD_ENCRYPTED_REGEX
        )

    def evaluate(self, key: str) -> RuleDecision:
        rules = self.rules

        if rules.unencrypted_suffix is not None and key.endswith(rules.unencrypted_suffix):
            decision = RuleDecision(encrypt=False, rule=FIELD_UNENCRYPTED_SUFFIX)

        elif rules.encrypted_suffix is not None:
            decision = RuleDecision(
                encrypt=key.endswith(rules.encrypted_suffix),
                rule=FIELD_ENCRYPTED_SUFFIX,
            )

        elif self._unencrypted_re is not None and self._unencrypted_re.search(key):
            decision = RuleDecision(encrypt=False, rule=FIELD_UNENCRYPTED_REGEX)

        elif self._encrypted_re is not None:
            decision = RuleDecision(
                encrypt=self._encrypted_re.search(key) is not None,
                rule=FIELD_ENCRYPTED_REGEX,
            )

        else:
            decision = RuleDecision(encrypt=True, rule=None)

        logger.debug(
            "key %r: encrypt=%s (rule=%s)", key, decision.encrypt, decision.rule or "default"
        )
        return decision

    def should_encrypt(self, key: str) -> bool:
        return self.evaluate(key).encrypt
