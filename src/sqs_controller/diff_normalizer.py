"""Policy normalization rules engine for SQS access policies.

SQS hands back the policy document it stored, but not always in the form
it was written: the list of service principals in a statement may come
back reordered. A plain structural comparison would report that as
drift on every pass.

DESIGN PHILOSOPHY:
- Minimal normalization: only paths with a known provider quirk are touched
- Exact paths: rules name a literal JSON path, no wildcards
- Fail loudly: a document that cannot be walked is malformed, not "different"

Everything else in the document, including other arrays such as Action
or Resource lists, is compared exactly as written.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .jsonutils import JSONTransformError, Transformer, sort_slice

logger = logging.getLogger(__name__)

SERVICE_PRINCIPALS_PATH = ".Statement[].Principal.Service[]"


class NormalizationType(str, Enum):
    """Types of normalization operations."""

    # Array order independence
    ARRAY_UNORDERED = "array_unordered"


@dataclass(frozen=True)
class NormalizationRule:
    """A single normalization rule.

    Attributes:
        path: Literal slice path the rule applies to.
        normalization_type: Type of normalization to apply.
        reason: Human-readable explanation.
    """

    path: str
    normalization_type: NormalizationType
    reason: str = ""


DEFAULT_NORMALIZATION_RULES: list[NormalizationRule] = [
    NormalizationRule(
        path=SERVICE_PRINCIPALS_PATH,
        normalization_type=NormalizationType.ARRAY_UNORDERED,
        reason="SQS may reorder service principals within a statement",
    ),
]


@dataclass
class NormalizationConfig:
    """Configuration for policy normalization.

    Attributes:
        rules: Custom normalization rules.
        enable_default_rules: Whether to include default rules.
        log_normalizations: Whether to log when normalizations are applied.
    """

    rules: list[NormalizationRule] = field(default_factory=list)
    enable_default_rules: bool = True
    log_normalizations: bool = True

    @classmethod
    def from_env(cls) -> NormalizationConfig:
        """Load configuration from environment.

        Environment Variables:
            ENABLE_DEFAULT_NORMALIZATION_RULES: If "false", disable defaults
            LOG_NORMALIZATIONS: If "false", don't log normalizations
        """
        return cls(
            enable_default_rules=os.environ.get(
                "ENABLE_DEFAULT_NORMALIZATION_RULES", "true"
            ).lower() in ("true", "1", "yes"),
            log_normalizations=os.environ.get(
                "LOG_NORMALIZATIONS", "true"
            ).lower() in ("true", "1", "yes"),
        )


class PolicyNormalizer:
    """Normalizes parsed policy documents so semantic equality is structural."""

    def __init__(
        self,
        rules: list[NormalizationRule] | None = None,
        enable_default_rules: bool = True,
        log_normalizations: bool = True,
    ) -> None:
        self._rules: list[NormalizationRule] = []
        if enable_default_rules:
            self._rules.extend(DEFAULT_NORMALIZATION_RULES)
        if rules:
            self._rules.extend(rules)
        self._log_normalizations = log_normalizations

        self._transformer = Transformer()
        for rule in self._rules:
            match rule.normalization_type:
                case NormalizationType.ARRAY_UNORDERED:
                    self._transformer.add_slice_transform(
                        rule.path, lambda _path, value: sort_slice(value)
                    )

    @classmethod
    def from_config(cls, config: NormalizationConfig) -> PolicyNormalizer:
        return cls(
            rules=config.rules,
            enable_default_rules=config.enable_default_rules,
            log_normalizations=config.log_normalizations,
        )

    @property
    def rules(self) -> list[NormalizationRule]:
        return list(self._rules)

    def normalize(self, document: dict[str, Any]) -> dict[str, Any]:
        """Normalize a parsed policy document in place.

        Returns:
            The same document, for chaining.

        Raises:
            JSONTransformError: If a rule path crosses an unexpected type.
        """
        if not isinstance(document, dict):
            raise JSONTransformError(
                f"policy document must be a JSON object, got {type(document).__name__}"
            )
        return self._transformer.transform(document)

    def are_equivalent(
        self,
        expected: dict[str, Any],
        actual: dict[str, Any],
    ) -> tuple[bool, str | None]:
        """Check if two parsed policies are semantically equivalent.

        Inputs are copied before normalizing, so callers keep their originals.

        Returns:
            Tuple of (are_equivalent, reason_if_equivalent_after_normalizing).
        """
        normalized_expected = self.normalize(copy.deepcopy(expected))
        normalized_actual = self.normalize(copy.deepcopy(actual))
        if normalized_expected != normalized_actual:
            return False, None
        if expected == actual:
            return True, None

        reason = "; ".join(rule.reason for rule in self._rules if rule.reason) or (
            "Values are semantically equivalent after normalization"
        )
        if self._log_normalizations:
            logger.debug(
                "Policy difference normalized away",
                extra={"reason": reason},
            )
        return True, reason


_default_normalizer: PolicyNormalizer | None = None


def get_policy_normalizer() -> PolicyNormalizer:
    """Get the process-wide normalizer built from environment configuration."""
    global _default_normalizer
    if _default_normalizer is None:
        _default_normalizer = PolicyNormalizer.from_config(NormalizationConfig.from_env())
    return _default_normalizer


def normalize_policy(document: dict[str, Any]) -> dict[str, Any]:
    """Sort service principals in a parsed policy, in place."""
    return get_policy_normalizer().normalize(document)


def parse_policy(text: str, what: str) -> dict[str, Any]:
    """Parse a policy body into a JSON object.

    Args:
        text: Policy document text.
        what: Description for error messages (e.g. "expected Policy").

    Raises:
        JSONTransformError: If the text is not a JSON object.
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise JSONTransformError(f"error parsing {what}: {e}") from e
    if not isinstance(document, dict):
        raise JSONTransformError(f"error parsing {what}: not a JSON object")
    return document


def policies_equivalent(expected_text: str, actual_text: str) -> bool:
    """Compare two policy bodies after parsing and normalizing both.

    Raises:
        JSONTransformError: If either body is not a walkable JSON object.
    """
    expected = parse_policy(expected_text, "expected Policy")
    actual = parse_policy(actual_text, "actual Policy")
    equivalent, _ = get_policy_normalizer().are_equivalent(expected, actual)
    return equivalent
