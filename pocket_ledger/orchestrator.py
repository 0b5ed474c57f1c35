"""
Main Orchestrator for Pocket Ledger

This module ties together all the components and defines the
end-to-end flows for one ledger:
1. Entry (submission → validate → append)
2. Configuration (accounts, currencies, rates, sync key)
3. Bulk import/export (CSV text ↔ transaction log)
4. Reads (balances, dashboard, history)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the log without passing validation
- The engines only ever see explicit inputs, never storage
- Every change is audited

The engines are pure; this is the only layer that reads settings,
talks to storage and logs warnings about what the engines report.
"""

import math
from datetime import date
from typing import Any, Mapping, Optional, Union
from uuid import UUID

import structlog

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.config import get_settings, validate_all_settings
from pocket_ledger.config.settings import LedgerSettings
from pocket_ledger.engine import build_dashboard, compute_balances, value_accounts
from pocket_ledger.engine.balances import BalanceMap
from pocket_ledger.engine.records import coerce_transactions
from pocket_ledger.io import ImportReport, export_transactions, import_transactions
from pocket_ledger.models.account import Account, LedgerConfig
from pocket_ledger.models.analytics import DashboardSnapshot, PortfolioValuation
from pocket_ledger.models.audit import AuditEventBuilder
from pocket_ledger.models.query import HistoryQuery, QueryResult
from pocket_ledger.models.transaction import TransactionBase, TransactionType
from pocket_ledger.models.validation import ValidationIssue, ValidationResult
from pocket_ledger.queries import QueryExecutor
from pocket_ledger.services.rates import ExchangeRateService, RateFetchError
from pocket_ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerConfig,
    InMemoryTransactionLog,
    LedgerConfigStorage,
    TransactionLogStorage,
)
from pocket_ledger.validation import LedgerValidationError, TransactionValidator


logger = structlog.get_logger(__name__)


def _precondition_failed(
    subject: str,
    field: str,
    issue_type: str,
    message: str,
) -> LedgerValidationError:
    issue = ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
    )
    return LedgerValidationError(ValidationResult(
        subject=subject,
        schema_valid=False,
        semantic_valid=False,
        is_valid=False,
        issues=[issue],
    ))


class LedgerService:
    """
    Orchestrates every operation on one ledger.

    The ledger is selected by its key (the user's sync key). Switching
    keys switches partitions; nothing is copied between them.
    """

    def __init__(
        self,
        ledger_key: str,
        transaction_log: TransactionLogStorage,
        config_storage: LedgerConfigStorage,
        audit_logger: Optional[AuditLogger] = None,
        rate_service: Optional[ExchangeRateService] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._settings = settings or get_settings().ledger
        self._validator = TransactionValidator(self._settings)

        key_check = self._validator.validate_sync_key(ledger_key)
        if not key_check.is_valid:
            raise LedgerValidationError(key_check)

        self._ledger_key = ledger_key.strip()
        self._log = transaction_log
        self._config = config_storage
        self._audit_logger = audit_logger
        self._rate_service = rate_service

    @property
    def ledger_key(self) -> str:
        return self._ledger_key

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def default_accounts(self) -> list[Account]:
        """Registry used while the ledger has no accounts of its own."""
        return [
            Account(
                id=self._settings.default_account_id,
                name=self._settings.default_account_name,
                currency=self._settings.default_account_currency,
            )
        ]

    async def load_config(self) -> LedgerConfig:
        """
        Current accounts, rates and currencies of this ledger.

        An empty stored registry yields the built-in default account; an
        empty currency list yields the configured default currencies.
        """
        accounts = await self._config.list_accounts(self._ledger_key)
        rates = await self._config.get_exchange_rates(self._ledger_key)
        currencies = await self._config.get_currencies(self._ledger_key)

        config = LedgerConfig(
            accounts=accounts,
            exchange_rates=rates,
            currencies=currencies or self._settings.currencies_list,
            base_currency=self._settings.base_currency,
        )
        return config.with_default_accounts(self.default_accounts())

    async def add_account(self, name: str, currency: str) -> Account:
        """Register an account. The currency must be a three-letter code."""
        if not (name or "").strip():
            raise _precondition_failed("account", "name", "missing", "Account name is required")
        currency_check = self._validator.validate_currency_code(currency)
        if not currency_check.is_valid:
            raise LedgerValidationError(currency_check)

        account = await self._config.add_account(
            self._ledger_key,
            name.strip(),
            currency.strip().upper(),
        )
        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.account_added(
                ledger_key=self._ledger_key,
                account_id=account.id,
                name=account.name,
                currency=account.currency,
            ))
        return account

    async def update_account(
        self,
        account_id: str,
        name: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Account:
        """
        Rename an account or change its currency.

        Transactions are untouched, so balances keep their numbers. A new
        currency changes how those numbers are valued from now on.
        """
        stored = await self._config.list_accounts(self._ledger_key)
        current = next((a for a in stored if a.id == account_id), None)
        if current is None:
            raise _precondition_failed(
                "account", "account_id", "not_found",
                f"Account not found: {account_id}",
            )

        changes: dict[str, Any] = {}
        if name is not None:
            if not name.strip():
                raise _precondition_failed("account", "name", "missing", "Account name is required")
            if name.strip() != current.name:
                changes["name"] = name.strip()
        if currency is not None:
            currency_check = self._validator.validate_currency_code(currency)
            if not currency_check.is_valid:
                raise LedgerValidationError(currency_check)
            if currency.strip().upper() != current.currency:
                changes["currency"] = currency.strip().upper()

        if not changes:
            return current

        account = await self._config.update_account(
            self._ledger_key,
            current.model_copy(update=changes),
        )
        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.account_updated(
                ledger_key=self._ledger_key,
                account_id=account.id,
                changes=changes,
            ))
        return account

    async def remove_account(self, account_id: str) -> bool:
        """
        Remove an account from the registry.

        Transactions that reference it are kept. Its balance stays in the
        raw balance map but drops out of valuation and dashboards.
        """
        removed = await self._config.remove_account(self._ledger_key, account_id)
        if removed:
            stored = await self._log.list_transactions(self._ledger_key)
            referencing = sum(
                1 for tx in coerce_transactions(stored).transactions
                if account_id in tx.account_ids
            )
            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.account_removed(
                    ledger_key=self._ledger_key,
                    account_id=account_id,
                    referencing_transactions=referencing,
                ))
        return removed

    async def add_currency(self, code: str) -> list[str]:
        """Enable a currency. Returns the new currency list."""
        config = await self.load_config()
        check = self._validator.validate_currency_code(code, existing=config.currencies)
        if not check.is_valid:
            raise LedgerValidationError(check)

        code = code.strip().upper()
        currencies = [*config.currencies, code]
        await self._config.set_currencies(self._ledger_key, currencies)
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.currency_added(self._ledger_key, code)
            )
        return currencies

    async def set_rate(self, currency: str, rate: Union[float, str]) -> None:
        """Set one exchange rate by hand (base-currency units per unit)."""
        check = self._validator.validate_currency_code(currency)
        if not check.is_valid:
            raise LedgerValidationError(check)
        currency = currency.strip().upper()

        if currency == self._settings.base_currency:
            raise _precondition_failed(
                "rate", "currency", "base_currency",
                f"{currency} is the base currency; its rate is always 1",
            )
        try:
            rate = float(rate)
        except (TypeError, ValueError):
            rate = math.nan
        if not math.isfinite(rate) or rate <= 0:
            raise _precondition_failed(
                "rate", "rate", "invalid_value",
                "Exchange rate must be a positive number",
            )

        await self._config.set_exchange_rate(self._ledger_key, currency, rate)
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.rate_set(self._ledger_key, currency, rate)
            )

    async def refresh_rates(self) -> dict[str, float]:
        """
        Fetch current rates for every enabled currency and store them.

        Currencies the API does not quote keep their previous rate.

        Raises:
            RateFetchError: The API could not be used; nothing is stored
        """
        config = await self.load_config()
        rate_service = self._rate_service or ExchangeRateService()

        try:
            rates = rate_service.fetch_rates(config.currencies, config.base_currency)
        except RateFetchError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="exchange_rates",
                    error_message=str(e),
                    ledger_key=self._ledger_key,
                )
            raise

        await self._config.set_exchange_rates(self._ledger_key, rates)
        missing = [
            c for c in config.currencies
            if c != config.base_currency and c not in rates
        ]
        if missing:
            logger.warning("rates_missing_after_refresh", currencies=missing)
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.rates_refreshed(self._ledger_key, rates, missing)
            )
        return rates

    async def change_sync_key(self, new_key: str) -> str:
        """Switch to another ledger partition. Returns the new key."""
        check = self._validator.validate_sync_key(new_key)
        if not check.is_valid:
            raise LedgerValidationError(check)

        old_key = self._ledger_key
        self._ledger_key = new_key.strip()
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.sync_key_changed(old_key, self._ledger_key)
            )
        return self._ledger_key

    # =========================================================================
    # TRANSACTION LOG
    # =========================================================================

    async def add_transaction(
        self,
        data: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[TransactionBase], ValidationResult]:
        """
        Validate a submission and append it to the log.

        Returns:
            (stored transaction, result). The transaction is None when the
            submission was rejected; nothing is written in that case.
        """
        config = await self.load_config()
        tx, result = self._validator.validate(data, config)

        if tx is None:
            if self._audit_logger:
                await self._audit_logger.log_transaction_rejected(
                    ledger_key=self._ledger_key,
                    issues=result.issues,
                    correlation_id=correlation_id,
                )
            return None, result

        stored = await self._log.append_transaction(self._ledger_key, tx)
        if self._audit_logger:
            await self._audit_logger.log_transaction_added(
                ledger_key=self._ledger_key,
                transaction_id=stored.id or "",
                transaction_type=stored.type,
                amount=stored.amount,
                correlation_id=correlation_id,
            )
        return stored, result

    async def delete_transaction(self, transaction_id: str) -> bool:
        """Delete one transaction. There is no undo."""
        found = await self._log.delete_transaction(self._ledger_key, transaction_id)
        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                ledger_key=self._ledger_key,
                transaction_id=transaction_id,
                found=found,
            )
        return found

    async def transactions(self) -> list[TransactionBase]:
        return await self._log.list_transactions(self._ledger_key)

    # =========================================================================
    # IMPORT / EXPORT
    # =========================================================================

    async def import_csv(
        self,
        text: str,
        today: Optional[date] = None,
    ) -> ImportReport:
        """
        Import CSV text into the log.

        Rows the parser cannot read, and rows that fail the same checks as
        interactive entry (e.g. a cross-currency transfer without a rate),
        are skipped and counted.
        """
        correlation_id = create_correlation_id()
        config = await self.load_config()
        parsed = import_transactions(
            text,
            fallback_account_id=self._settings.fallback_account_id,
            today=today or date.today(),
        )

        accepted = []
        rejected = 0
        for tx in parsed.transactions:
            if not self._validator.check_semantics(tx, config).is_valid:
                rejected += 1
                continue
            accepted.append(await self._log.append_transaction(self._ledger_key, tx))

        report = ImportReport(
            transactions=accepted,
            total_rows=parsed.total_rows,
            skipped_count=parsed.skipped_count + rejected,
        )
        logger.info(
            "csv_imported",
            imported=report.imported_count,
            skipped=report.skipped_count,
            correlation_id=str(correlation_id),
        )
        if self._audit_logger:
            await self._audit_logger.log_import_completed(
                ledger_key=self._ledger_key,
                imported=report.imported_count,
                skipped=report.skipped_count,
                correlation_id=correlation_id,
            )
        return report

    async def export_csv(self, include_bom: bool = True) -> str:
        """Whole log as CSV text, oldest submission first."""
        stored = await self._log.list_transactions(self._ledger_key)
        readable = coerce_transactions(stored).transactions
        text = export_transactions(readable, include_bom=include_bom)
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.export_completed(self._ledger_key, len(readable))
            )
        return text

    # =========================================================================
    # READS
    # =========================================================================

    async def balances(self) -> BalanceMap:
        """
        Raw balance map. Includes ids of removed accounts that
        transactions still reference.
        """
        config = await self.load_config()
        stored = await self._log.list_transactions(self._ledger_key)
        return compute_balances(stored, config.accounts)

    async def valuation(self) -> PortfolioValuation:
        config = await self.load_config()
        stored = await self._log.list_transactions(self._ledger_key)
        result = value_accounts(
            compute_balances(stored, config.accounts),
            config.accounts,
            config.exchange_rates,
            config.base_currency,
        )
        if result.unpriced_currencies:
            logger.warning("currency_unpriced", currencies=result.unpriced_currencies)
        return result

    async def dashboard(
        self,
        window_days: Optional[int] = None,
        stat_type: Union[TransactionType, str] = TransactionType.EXPENSE,
        today: Optional[date] = None,
    ) -> DashboardSnapshot:
        """
        Every dashboard projection over one consistent read of the ledger.

        Raises:
            LedgerValidationError: ``window_days`` is not a configured window
        """
        if window_days is None:
            window_days = self._settings.default_window_days
        if window_days not in self._settings.trend_windows_list:
            raise _precondition_failed(
                "window", "window_days", "invalid_window",
                f"Window must be one of {self._settings.trend_windows_list} days",
            )

        config = await self.load_config()
        stored = await self._log.list_transactions(self._ledger_key)
        snapshot = build_dashboard(
            stored,
            config,
            window_days=window_days,
            today=today or date.today(),
            stat_type=stat_type,
            other_label=self._settings.other_category_label,
        )

        if snapshot.unrated_transfer_ids:
            logger.warning(
                "transfer_rate_missing",
                ledger_key=self._ledger_key,
                transaction_ids=snapshot.unrated_transfer_ids,
            )
        if snapshot.valuation.unpriced_currencies:
            logger.warning(
                "currency_unpriced",
                ledger_key=self._ledger_key,
                currencies=snapshot.valuation.unpriced_currencies,
            )
        if snapshot.skipped_rows:
            logger.warning(
                "transaction_rows_skipped",
                ledger_key=self._ledger_key,
                count=snapshot.skipped_rows,
            )
        return snapshot

    async def history(self, query: Optional[HistoryQuery] = None) -> QueryResult:
        """Filtered, newest-first view of the log."""
        query = query or HistoryQuery()
        executor = QueryExecutor(self._log, self._ledger_key)
        result = await executor.execute(query)

        if not result.success:
            logger.error("history_query_failed", ledger_key=self._ledger_key, error=result.error_message)
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="history_query_failed",
                    error_message=result.error_message or "",
                    details={"query_id": str(query.query_id)},
                    ledger_key=self._ledger_key,
                )
            return result

        if self._audit_logger:
            await self._audit_logger.log_query_executed(
                ledger_key=self._ledger_key,
                query_id=query.query_id,
                result_count=result.result_count,
            )
        return result


def create_ledger_service(
    ledger_key: str,
    settings: Optional[LedgerSettings] = None,
    persist_audit: bool = False,
) -> LedgerService:
    """
    Factory function to create a ledger service with in-memory storage.

    Args:
        ledger_key: Sync key selecting the ledger partition
        settings: Ledger settings; read from the environment if None
        persist_audit: Keep audit events in memory as well as logging them.
                      Set to False for local-only audit logging.

    Returns:
        A ready-to-use LedgerService

    Raises:
        ValueError: settings were read from the environment and are invalid
    """
    if settings is None:
        status = validate_all_settings()
        errors = {name: message for name, message in status.items() if name.endswith("_error")}
        if errors:
            logger.error("settings_invalid", **errors)
            raise ValueError(f"Invalid configuration: {errors}")

    audit_logger = AuditLogger(InMemoryAuditStorage() if persist_audit else None)

    return LedgerService(
        ledger_key=ledger_key,
        transaction_log=InMemoryTransactionLog(),
        config_storage=InMemoryLedgerConfig(),
        audit_logger=audit_logger,
        settings=settings,
    )
