"""
Password policy compiler.

Turns the flat key/value parameters stored in the database into an immutable
Matcher. The Matcher checks passwords with plain predicates; the regular
expression it carries is only a human-readable rendition for operators.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from registrar.errors import PolicyInconsistent

logger = logging.getLogger(__name__)


class ParameterKey(str, Enum):
    """Parameter keys that take part in password validation."""

    MIN_LENGTH = "password.min.length"
    MAX_LENGTH = "password.max.length"
    MIN_UPPERCASE = "password.min.uppercase"
    MIN_LOWERCASE = "password.min.lowercase"
    MIN_DIGITS = "password.min.digits"
    MIN_SPECIAL = "password.min.special"
    ALLOWED_SPECIAL = "password.allowed.special"

    @classmethod
    def from_key(cls, key: str) -> Optional["ParameterKey"]:
        """Return the matching member, or None for keys the policy ignores."""
        try:
            return cls(key)
        except ValueError:
            return None


DEFAULTS = {
    ParameterKey.MIN_LENGTH: 8,
    ParameterKey.MAX_LENGTH: 30,
    ParameterKey.MIN_UPPERCASE: 0,
    ParameterKey.MIN_LOWERCASE: 0,
    ParameterKey.MIN_DIGITS: 0,
    ParameterKey.MIN_SPECIAL: 0,
    ParameterKey.ALLOWED_SPECIAL: "-.#$%&",
}

# Smallest legal value of each integer key
_INT_FLOORS = {
    ParameterKey.MIN_LENGTH: 1,
    ParameterKey.MAX_LENGTH: 1,
    ParameterKey.MIN_UPPERCASE: 0,
    ParameterKey.MIN_LOWERCASE: 0,
    ParameterKey.MIN_DIGITS: 0,
    ParameterKey.MIN_SPECIAL: 0,
}


@dataclass(frozen=True)
class CompiledPolicy:
    """Resolved password policy."""

    min_length: int
    max_length: int
    min_uppercase: int
    min_lowercase: int
    min_digits: int
    min_special: int
    allowed_special: frozenset[str]
    pattern: str


class Matcher:
    """Immutable password validator built from a CompiledPolicy."""

    __slots__ = ("_policy",)

    def __init__(self, policy: CompiledPolicy):
        self._policy = policy

    @property
    def policy(self) -> CompiledPolicy:
        return self._policy

    def validate(self, password: Optional[str]) -> bool:
        """Check a password against every rule of the policy."""
        if password is None or not isinstance(password, str):
            return False

        policy = self._policy
        if not policy.min_length <= len(password) <= policy.max_length:
            return False

        upper = lower = digits = special = 0
        for ch in password:
            in_special = ch in policy.allowed_special
            if in_special:
                special += 1

            if "A" <= ch <= "Z":
                upper += 1
            elif "a" <= ch <= "z":
                lower += 1
            elif "0" <= ch <= "9":
                digits += 1
            elif not in_special:
                return False

        return (
            upper >= policy.min_uppercase
            and lower >= policy.min_lowercase
            and digits >= policy.min_digits
            and special >= policy.min_special
        )

    def describe(self) -> str:
        """Return the regular expression rendition of the policy."""
        return self._policy.pattern

    def __repr__(self) -> str:
        return f"<Matcher(pattern={self._policy.pattern!r})>"


def _parse_int(key: ParameterKey, raw: Optional[str]) -> int:
    default = DEFAULTS[key]
    if raw is None:
        return default

    try:
        value = int(raw.strip())
    except (AttributeError, ValueError):
        logger.warning(
            f"Non-numeric value for {key.value}: {raw!r}, using default {default}",
            extra={"event": "policy.fallback", "key": key.value, "value": raw},
        )
        return default

    if value < _INT_FLOORS[key]:
        logger.warning(
            f"Out of range value for {key.value}: {value}, using default {default}",
            extra={"event": "policy.fallback", "key": key.value, "value": raw},
        )
        return default

    return value


def _parse_special(raw: Optional[str]) -> str:
    default = DEFAULTS[ParameterKey.ALLOWED_SPECIAL]
    if raw is None:
        return default

    if raw == "":
        logger.warning(
            f"Empty value for {ParameterKey.ALLOWED_SPECIAL.value}, using default {default!r}",
            extra={"event": "policy.fallback", "key": ParameterKey.ALLOWED_SPECIAL.value, "value": raw},
        )
        return default

    # Distinct code points, first occurrence order
    return "".join(dict.fromkeys(raw))


def build_pattern(
    min_length: int,
    max_length: int,
    minimums: list[tuple[str, int]],
    quoted_special: str,
    length_guard: bool = False,
) -> str:
    """Render the policy as a regular expression."""
    parts = [f"^(?=.{{{min_length},{max_length}}})"]
    if length_guard:
        parts.append(f"(?!.{{{max_length + 1},}})")

    for char_class, count in minimums:
        if count > 0:
            parts.append(f"(?=(?:.*{char_class}){{{count},}})")

    parts.append(f"[A-Za-z\\d{quoted_special}]*$")
    return "".join(parts)


def _too_long_probe(policy_values: dict[ParameterKey, int], special: str, max_length: int) -> str:
    """A string that meets every class minimum and is one character too long."""
    probe = (
        "A" * policy_values[ParameterKey.MIN_UPPERCASE]
        + "a" * policy_values[ParameterKey.MIN_LOWERCASE]
        + "1" * policy_values[ParameterKey.MIN_DIGITS]
        + special[0] * policy_values[ParameterKey.MIN_SPECIAL]
    )
    return probe + "a" * max(0, max_length + 1 - len(probe))


def compile_matcher(parameters: Mapping[str, str]) -> Matcher:
    """
    Compile stored parameters into a Matcher.

    Args:
        parameters: Raw key -> value mapping of the active parameters. Keys
            outside ParameterKey are ignored.

    Returns:
        The compiled Matcher.

    Raises:
        PolicyInconsistent: If the minimum length exceeds the maximum length.
    """
    raw: dict[ParameterKey, str] = {}
    for key, value in parameters.items():
        parameter_key = ParameterKey.from_key(key)
        if parameter_key is None:
            logger.debug(f"Ignoring parameter not used by the password policy: {key}")
            continue
        raw[parameter_key] = value

    values = {key: _parse_int(key, raw.get(key)) for key in _INT_FLOORS}
    special = _parse_special(raw.get(ParameterKey.ALLOWED_SPECIAL))

    min_length = values[ParameterKey.MIN_LENGTH]
    max_length = values[ParameterKey.MAX_LENGTH]
    if min_length > max_length:
        logger.error(
            f"Minimum length ({min_length}) is greater than maximum length ({max_length})",
            extra={"event": "policy.inconsistent", "min_length": min_length, "max_length": max_length},
        )
        raise PolicyInconsistent(min_length, max_length)

    required = (
        values[ParameterKey.MIN_UPPERCASE]
        + values[ParameterKey.MIN_LOWERCASE]
        + values[ParameterKey.MIN_DIGITS]
        + values[ParameterKey.MIN_SPECIAL]
    )
    if required > max_length:
        logger.warning(
            f"Class minimums require {required} characters but maximum length is {max_length}; "
            f"no password can satisfy this policy",
            extra={"event": "policy.unsatisfiable", "required": required, "max_length": max_length},
        )

    quoted = "".join(re.escape(ch) for ch in special)
    minimums = [
        ("[A-Z]", values[ParameterKey.MIN_UPPERCASE]),
        ("[a-z]", values[ParameterKey.MIN_LOWERCASE]),
        ("\\d", values[ParameterKey.MIN_DIGITS]),
        (f"[{quoted}]", values[ParameterKey.MIN_SPECIAL]),
    ]

    pattern = build_pattern(min_length, max_length, minimums, quoted)
    probe = _too_long_probe(values, special, max_length)
    if re.fullmatch(pattern, probe):
        # The lookahead only bounds the prefix, so add an explicit upper guard
        pattern = build_pattern(min_length, max_length, minimums, quoted, length_guard=True)
        logger.debug(f"Pattern admitted {len(probe)} characters, added length guard")

    policy = CompiledPolicy(
        min_length=min_length,
        max_length=max_length,
        min_uppercase=values[ParameterKey.MIN_UPPERCASE],
        min_lowercase=values[ParameterKey.MIN_LOWERCASE],
        min_digits=values[ParameterKey.MIN_DIGITS],
        min_special=values[ParameterKey.MIN_SPECIAL],
        allowed_special=frozenset(special),
        pattern=pattern,
    )
    logger.info(f"Password policy compiled: {pattern}")
    return Matcher(policy)
