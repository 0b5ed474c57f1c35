"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- The submission must build one of the four transaction models
- Required accounts present, amount parseable and finite
- Income and expense amounts non-negative

STAGE 2 - SEMANTIC VALIDATION:
- Checks against the ledger's current accounts
- Cross-currency transfers must carry a positive exchange rate
- Unknown accounts and self-transfers are flagged

Stage 2 only runs if stage 1 passes; it needs a built model to work on.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can show every problem at once.
"""

import math
import re
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from pocket_ledger.config import get_settings
from pocket_ledger.config.settings import LedgerSettings
from pocket_ledger.models.account import LedgerConfig
from pocket_ledger.models.transaction import (
    TransactionBase,
    TransactionType,
    parse_transaction,
)
from pocket_ledger.models.validation import ValidationIssue, ValidationResult


_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")

# Input aliases mapped back to model field names for issue reporting
_FIELD_NAMES = {
    "date": "event_date",
    "fromAccount": "from_account",
    "toAccount": "to_account",
    "subCategory": "sub_category",
    "exchangeRate": "exchange_rate",
    "createdTimestamp": "created_at",
    "timestamp": "created_at",
}

_TYPE_TAGS = {t.value for t in TransactionType}
_TYPE_VALUES = ", ".join(t.value for t in TransactionType)


class LedgerValidationError(ValueError):
    """A service precondition failed. Carries the full validation result."""

    def __init__(self, result: ValidationResult):
        self.result = result
        message = "; ".join(result.error_messages) or "Validation failed"
        super().__init__(message)


def _result(
    issues: list[ValidationIssue],
    subject: str,
    schema_valid: Optional[bool] = None,
    semantic_valid: Optional[bool] = None,
) -> ValidationResult:
    has_errors = any(issue.severity == "error" for issue in issues)
    if schema_valid is None:
        schema_valid = not has_errors
    if semantic_valid is None:
        semantic_valid = not has_errors
    return ValidationResult(
        subject=subject,
        schema_valid=schema_valid,
        semantic_valid=semantic_valid,
        is_valid=schema_valid and semantic_valid,
        issues=issues,
        warnings=[issue.message for issue in issues if issue.severity == "warning"],
    )


def _issue_from_error(error: dict) -> ValidationIssue:
    """Translate one pydantic error into a user-facing issue."""
    # Discriminated unions prefix the location with the variant tag
    names = [part for part in error.get("loc", ()) if isinstance(part, str)]
    names = [n for n in names if n not in _TYPE_TAGS]
    field = _FIELD_NAMES.get(names[-1], names[-1]) if names else "type"
    kind = error.get("type", "")

    if kind in ("union_tag_invalid", "union_tag_not_found"):
        return ValidationIssue(
            field="type",
            issue_type="invalid_type",
            message=f"Transaction type must be one of: {_TYPE_VALUES}",
            severity="error",
            suggested_fix="Pick income, expense, transfer or adjustment",
        )
    if field == "amount" and kind == "greater_than_equal":
        return ValidationIssue(
            field="amount",
            issue_type="negative_amount",
            message="Income and expense amounts cannot be negative",
            severity="error",
            suggested_fix="Enter a positive amount, or use an adjustment to reduce a balance",
        )
    if kind == "missing" or kind == "string_too_short":
        return ValidationIssue(
            field=field,
            issue_type="missing",
            message=f"{field.replace('_', ' ').capitalize()} is required",
            severity="error",
            suggested_fix="Fill in the field and submit again",
        )
    return ValidationIssue(
        field=field,
        issue_type="invalid_value",
        message=f"{field.replace('_', ' ').capitalize()}: {error.get('msg', 'invalid value')}",
        severity="error",
    )


class TransactionValidator:
    """
    Validates a transaction submission through a two-stage pipeline.

    Stage 1: Schema validation (builds the model)
    Stage 2: Semantic validation (needs the ledger's accounts)
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def _validate_schema(
        self,
        data: Mapping[str, Any],
    ) -> tuple[Optional[TransactionBase], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (transaction or None, list_of_issues)
        """
        try:
            return parse_transaction(data), []
        except ValidationError as e:
            issues = []
            seen = set()
            for error in e.errors():
                issue = _issue_from_error(error)
                key = (issue.field, issue.issue_type)
                if key not in seen:
                    seen.add(key)
                    issues.append(issue)
            return None, issues

    def _validate_semantic(
        self,
        tx: TransactionBase,
        config: LedgerConfig,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Referenced accounts exist
        - Transfer source differs from destination
        - Cross-currency transfers carry a usable rate

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        for account_id in tx.account_ids:
            if config.get_account(account_id) is None:
                issues.append(ValidationIssue(
                    field="account",
                    issue_type="unknown_account",
                    message=f"Account '{account_id}' is not registered",
                    severity="warning",
                    suggested_fix="Its balance will not be shown until the account exists",
                ))

        if tx.type == TransactionType.TRANSFER:
            if tx.from_account == tx.to_account:
                issues.append(ValidationIssue(
                    field="to_account",
                    issue_type="self_transfer",
                    message="Transfer source and destination are the same account",
                    severity="warning",
                    suggested_fix="This transfer has no effect on balances",
                ))

            source = config.currency_of(tx.from_account)
            target = config.currency_of(tx.to_account)
            rate = tx.exchange_rate
            if source != target and (rate is None or not math.isfinite(rate) or rate <= 0):
                issues.append(ValidationIssue(
                    field="exchange_rate",
                    issue_type="missing_rate",
                    message=(
                        f"Transfer from {source or 'unknown'} to {target or 'unknown'} "
                        "needs a positive exchange rate"
                    ),
                    severity="error",
                    suggested_fix="Enter how many destination units one source unit buys",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(
        self,
        data: Mapping[str, Any],
        config: LedgerConfig,
    ) -> tuple[Optional[TransactionBase], ValidationResult]:
        """
        Run full two-stage validation pipeline.

        Args:
            data: The raw submission (form fields or an import row)
            config: Current accounts and rates of the ledger

        Returns:
            (transaction, result). The transaction is None whenever the
            result has errors.
        """
        tx, issues = self._validate_schema(data)
        schema_valid = tx is not None

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(tx, config)
            issues.extend(semantic_issues)

        result = _result(issues, "transaction", schema_valid, semantic_valid)
        return (tx if result.is_valid else None), result

    def check_semantics(
        self,
        tx: TransactionBase,
        config: LedgerConfig,
    ) -> ValidationResult:
        """Run stage 2 only, for transactions already built (e.g. by import)."""
        semantic_valid, issues = self._validate_semantic(tx, config)
        return _result(issues, "transaction", True, semantic_valid)

    def validate_sync_key(self, key: Optional[str]) -> ValidationResult:
        """A sync key is stripped and must meet the minimum length."""
        issues = []
        stripped = (key or "").strip()
        minimum = self._settings.min_sync_key_length
        if len(stripped) < minimum:
            issues.append(ValidationIssue(
                field="sync_key",
                issue_type="too_short",
                message=f"Sync key must be at least {minimum} characters",
                severity="error",
                suggested_fix="Choose a longer key that is hard to guess",
            ))
        return _result(issues, "sync_key")

    def validate_currency_code(
        self,
        code: Optional[str],
        existing: Iterable[str] = (),
    ) -> ValidationResult:
        """A new currency code is three letters and not already enabled."""
        issues = []
        normalized = (code or "").strip().upper()
        if not _CURRENCY_RE.match(normalized):
            issues.append(ValidationIssue(
                field="currency",
                issue_type="invalid_format",
                message=f"'{code}' is not a three-letter currency code",
                severity="error",
                suggested_fix="Use an ISO code such as USD or JPY",
            ))
        elif normalized in {c.upper() for c in existing}:
            issues.append(ValidationIssue(
                field="currency",
                issue_type="duplicate",
                message=f"{normalized} is already enabled",
                severity="error",
            ))
        return _result(issues, "currency")

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show next to the entry form.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if result.has_errors:
            lines.append("❌ This entry cannot be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        lines.append("")
        if result.is_valid:
            lines.append("The entry was saved.")
        else:
            lines.append("Please fix the issues above before continuing.")

        return "\n".join(lines)
