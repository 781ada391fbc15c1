"""
=============================================================================
FIELD VALIDATION MIDDLEWARE
=============================================================================

Declarative, per-field rule lists:

    TODO_RULES = {
        "title":   "required|string|min:3|max:100",
        "user_id": "required|string|min:3|max:25",
    }

    router.post("/", todos.store, [ValidationMiddleware(TODO_RULES)])

=============================================================================
RULES
=============================================================================

    ┌────────────┬─────────────────────────────────────────────────────────┐
    │ required   │ key present, not None, not a blank string               │
    │ sometimes  │ skip ALL rules for the field when the key is absent     │
    │ string     │ isinstance(value, str)                                  │
    │ email      │ looks like local@domain.tld                             │
    │ min:N      │ len(str) >= N   (numbers: value >= N)                   │
    │ max:N      │ len(str) <= N   (numbers: value <= N)                   │
    │ boolean    │ True/False, "true"/"false", 0/1, "0"/"1"                │
    │ numeric    │ int/float, or a string float() accepts                  │
    │ regex:P    │ re.search(P, str(value))                                │
    └────────────┴─────────────────────────────────────────────────────────┘

Every rule of every field runs; failures ACCUMULATE:

    {"title": ""}  →  {"errors": {"title": ["title is required",
                                            "title must be at least 3 characters"]}}

A missing key (or None) only fails `required`; the other rules are skipped
for it. Presence is decided by the KEY, not truthiness, so
{"is_admin": False} is present and valid for `boolean`.

On success the request body is REPLACED by the validated fields only
(anything the client sent that has no rule is dropped), with boolean
fields normalized to real bools.

=============================================================================
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging
import re

from .base import Middleware, NextHandler
from ..errors import ValidationError
from ..http.request import Request
from ..http.response import Response
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


KNOWN_RULES = {"required", "sometimes", "string", "email", "min", "max", "boolean", "numeric", "regex"}
PARAMETERIZED_RULES = {"min", "max", "regex"}

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

TRUE_VALUES = ("true", "1")
FALSE_VALUES = ("false", "0")

Rule = Tuple[str, Optional[str]]


def parse_rules(rules: Mapping[str, str]) -> Dict[str, List[Rule]]:
    """
    Split "required|min:3" strings into [("required", None), ("min", "3")].

    Raises:
        ValueError: Unknown rule name or missing parameter.
    """
    parsed: Dict[str, List[Rule]] = {}
    for field_name, rule_string in rules.items():
        field_rules: List[Rule] = []
        for rule in filter(None, rule_string.split("|")):
            name, _, param = rule.partition(":")
            if name not in KNOWN_RULES:
                raise ValueError(f"Unknown validation rule {name!r} for field {field_name!r}")
            if name in PARAMETERIZED_RULES and not param:
                raise ValueError(f"Rule {name!r} for field {field_name!r} needs a parameter")
            if name in ("min", "max"):
                int(param)
            field_rules.append((name, param or None))
        parsed[field_name] = field_rules
    return parsed


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_numeric(value: Any) -> bool:
    if _is_number(value):
        return True
    if isinstance(value, str) and value.strip():
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def _to_bool(value: Any) -> Optional[bool]:
    """Interpret a boolean-ish value, None if it isn't one."""
    if isinstance(value, bool):
        return value
    if _is_number(value) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    return None


def _size(value: Any) -> float:
    if _is_number(value):
        return value
    return len(str(value))


def _compile_regex(param: str) -> "re.Pattern":
    # "/^[a-z]+$/" style delimiters are accepted and stripped
    if len(param) >= 2 and param.startswith("/") and param.endswith("/"):
        param = param[1:-1]
    return re.compile(param)


class Validator:
    """
    Evaluates a rule table against a data dict.

        result = Validator({"title": "required|min:3"}).validate({"title": "ab"})
        result.errors     # {"title": ["title must be at least 3 characters"]}
        result.validated  # {}
    """

    def __init__(self, rules: Mapping[str, str]):
        self.rules = parse_rules(rules)
        self._patterns = {
            (field_name, param): _compile_regex(param)
            for field_name, field_rules in self.rules.items()
            for name, param in field_rules
            if name == "regex"
        }

    def validate(self, data: Mapping[str, Any]) -> "ValidationResult":
        errors: Dict[str, List[str]] = {}
        validated: Dict[str, Any] = {}

        for field_name, field_rules in self.rules.items():
            present = field_name in data
            rule_names = {name for name, _ in field_rules}

            if "sometimes" in rule_names and not present:
                continue

            value = data.get(field_name)
            messages = self._check_field(field_name, value, field_rules)

            if messages:
                errors[field_name] = messages
            elif present:
                if "boolean" in rule_names and value is not None:
                    value = _to_bool(value)
                validated[field_name] = value

        return ValidationResult(errors=errors, validated=validated)

    def _check_field(self, field_name: str, value: Any, field_rules: List[Rule]) -> List[str]:
        messages: List[str] = []

        for name, param in field_rules:
            if name == "required":
                if value is None or (isinstance(value, str) and not value.strip()):
                    messages.append(f"{field_name} is required")
                continue

            # Absent values are only checked by `required`
            if value is None:
                continue

            if name == "string" and not isinstance(value, str):
                messages.append(f"{field_name} must be a string")
            elif name == "email" and not (isinstance(value, str) and EMAIL_PATTERN.match(value)):
                messages.append(f"{field_name} must be a valid email")
            elif name == "min" and _size(value) < int(param):
                messages.append(f"{field_name} must be at least {param} characters")
            elif name == "max" and _size(value) > int(param):
                messages.append(f"{field_name} must be at most {param} characters")
            elif name == "boolean" and _to_bool(value) is None:
                messages.append(f"{field_name} must be a boolean")
            elif name == "numeric" and not _is_numeric(value):
                messages.append(f"{field_name} must be numeric")
            elif name == "regex" and not self._patterns[(field_name, param)].search(str(value)):
                messages.append(f"{field_name} format is invalid")

        return messages


class ValidationResult:
    def __init__(self, errors: Dict[str, List[str]], validated: Dict[str, Any]):
        self.errors = errors
        self.validated = validated

    @property
    def fails(self) -> bool:
        return bool(self.errors)


class ValidationMiddleware(Middleware):
    """
    Validates the request body and whitelists it before calling next.

    Args:
        rules: Field → "rule|rule:param" mapping.
        status: Status used for failures (422 by default, 400 for some routes).
    """

    def __init__(self, rules: Mapping[str, str], status: int = HTTPStatus.UNPROCESSABLE_ENTITY):
        self.validator = Validator(rules)
        self.status = status

    def handle(self, request: Request, next: NextHandler) -> Response:
        result = self.validator.validate(request.body)

        if result.fails:
            logger.debug(f"Validation failed on {request.method} {request.path}: {result.errors}")
            failure = ValidationError(result.errors, code=self.status)
            return Response(payload=failure.to_dict(), status=failure.code)

        request.body = result.validated
        return next(request)

    @property
    def name(self) -> str:
        return "Validation"
