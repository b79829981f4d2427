"""Persistence for accounts, holdings, valuation history and rates.

Protocol definition, SQLite implementation, factory. The aggregation layer
reads account and holding rows, writes prices and balances back, and
appends valuation history. Valuation rows are insert-only; several rows for
the same account and day are expected.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import ClassVar, Protocol, runtime_checkable

import aiosqlite

from wealthfeed.core.config import StorageConfig
from wealthfeed.core.exceptions import StorageError
from wealthfeed.core.models import (
    Account,
    AccountType,
    CryptoHolding,
    DataSource,
    ExchangeRateRecord,
    StockHolding,
    ValuationRecord,
    ValuationSource,
    utcnow,
)

logger = logging.getLogger(__name__)

_DETAIL_TABLES: dict[AccountType, str] = {
    AccountType.STOCK: "stocks",
    AccountType.CRYPTO: "crypto_assets",
}


@dataclass(frozen=True)
class PriceUpdate:
    """Everything written for one account after a successful quote."""

    account_type: AccountType
    account_id: str
    price: float
    balance: float
    valuation: ValuationRecord
    updated_at: datetime


@runtime_checkable
class AccountStore(Protocol):
    """Storage interface used by the refresh service and sync job."""

    async def list_active_accounts(
        self, household_id: str, account_type: AccountType
    ) -> list[Account]: ...
    async def get_stock_holding(self, account_id: str) -> StockHolding | None: ...
    async def get_crypto_holding(self, account_id: str) -> CryptoHolding | None: ...
    async def apply_price_updates(self, updates: list[PriceUpdate]) -> int: ...
    async def touch_data_source(
        self, household_id: str | None, provider: str, synced_at: datetime
    ) -> int: ...
    async def get_data_sources(self, household_id: str) -> list[DataSource]: ...
    async def last_provider_sync(self, provider: str) -> datetime | None: ...
    async def get_valuation_history(
        self,
        account_id: str,
        start: date | None = None,
        end: date | None = None,
        limit: int | None = None,
    ) -> list[ValuationRecord]: ...
    async def get_latest_valuation(self, account_id: str) -> ValuationRecord | None: ...
    async def find_exchange_rate(
        self, from_currency: str, to_currency: str, since: datetime
    ) -> ExchangeRateRecord | None: ...
    async def save_exchange_rate(self, record: ExchangeRateRecord) -> int: ...
    async def update_exchange_rate(
        self, record_id: int, rate: float, observed_at: datetime
    ) -> None: ...
    async def initialize(self) -> None: ...
    async def close(self) -> None: ...
    async def health_check(self) -> bool: ...


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class SqliteAccountStore:
    """SQLite implementation of the account store.

    Uses aiosqlite for async access, WAL mode for concurrent reads,
    and a version-tracked migration system.
    """

    _MIGRATIONS: ClassVar[dict[int, tuple[str, list[str]]]] = {
        1: (
            "Initial schema",
            [
                """CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT DEFAULT (datetime('now'))
                )""",
                """CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL,
                    currency TEXT NOT NULL DEFAULT 'USD',
                    current_balance REAL NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    updated_at TEXT
                )""",
                """CREATE TABLE IF NOT EXISTS stocks (
                    account_id TEXT PRIMARY KEY REFERENCES accounts(id) ON DELETE CASCADE,
                    symbol TEXT NOT NULL,
                    exchange TEXT,
                    security_name TEXT,
                    shares REAL NOT NULL DEFAULT 0,
                    current_price REAL,
                    price_updated_at TEXT,
                    updated_at TEXT
                )""",
                """CREATE TABLE IF NOT EXISTS crypto_assets (
                    account_id TEXT PRIMARY KEY REFERENCES accounts(id) ON DELETE CASCADE,
                    symbol TEXT NOT NULL,
                    name TEXT,
                    coingecko_id TEXT,
                    holdings REAL NOT NULL DEFAULT 0,
                    current_price REAL,
                    price_updated_at TEXT,
                    updated_at TEXT
                )""",
                """CREATE TABLE IF NOT EXISTS valuation_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    account_id TEXT NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
                    date TEXT NOT NULL,
                    value REAL NOT NULL,
                    currency TEXT NOT NULL DEFAULT 'USD',
                    source TEXT NOT NULL DEFAULT 'manual',
                    underlying_price REAL,
                    quantity REAL,
                    created_at TEXT DEFAULT (datetime('now'))
                )""",
                """CREATE TABLE IF NOT EXISTS data_sources (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    household_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    provider TEXT NOT NULL,
                    is_enabled INTEGER NOT NULL DEFAULT 1,
                    last_sync_at TEXT,
                    UNIQUE(household_id, provider)
                )""",
                """CREATE TABLE IF NOT EXISTS exchange_rates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    from_currency TEXT NOT NULL,
                    to_currency TEXT NOT NULL,
                    rate REAL NOT NULL,
                    date TEXT NOT NULL,
                    source TEXT NOT NULL DEFAULT 'frankfurter',
                    created_at TEXT DEFAULT (datetime('now'))
                )""",
                # Indexes
                "CREATE INDEX IF NOT EXISTS idx_accounts_household ON accounts(household_id, type)",
                "CREATE INDEX IF NOT EXISTS idx_valuation_account_date ON valuation_history(account_id, date)",
                "CREATE INDEX IF NOT EXISTS idx_valuation_date ON valuation_history(date)",
                "CREATE INDEX IF NOT EXISTS idx_rates_pair_date ON exchange_rates(from_currency, to_currency, date)",
            ],
        ),
    }

    def __init__(self, config: StorageConfig) -> None:
        self._path = config.sqlite_path
        self._db: aiosqlite.Connection | None = None
        # One connection means one transaction; writers take turns.
        self._tx_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Open connection, enable WAL + FK, run migrations."""
        try:
            if self._path != ":memory:":
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(self._path)
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.execute("PRAGMA foreign_keys=ON")
            current = await self._get_schema_version()
            await self._apply_migrations(current)
            await self._db.commit()
        except Exception as e:
            raise StorageError(
                f"Failed to initialize SQLite store: {e}",
                context={"operation": "initialize", "path": self._path},
            ) from e

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def health_check(self) -> bool:
        if self._db is None:
            return False
        try:
            async with self._db.execute("SELECT 1") as cursor:
                row = await cursor.fetchone()
            return row is not None
        except aiosqlite.Error:
            return False

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StorageError(
                "Store is not initialized",
                context={"operation": "connect", "path": self._path},
            )
        return self._db

    # --- Schema Migration ---

    async def _get_schema_version(self) -> int:
        try:
            async with self.db.execute(
                "SELECT MAX(version) FROM schema_version"
            ) as cursor:
                row = await cursor.fetchone()
            return row[0] if row[0] is not None else 0
        except aiosqlite.OperationalError:
            return 0

    async def _apply_migrations(self, current_version: int) -> None:
        for version in sorted(self._MIGRATIONS.keys()):
            if version <= current_version:
                continue
            desc, statements = self._MIGRATIONS[version]
            logger.info("Applying migration %d: %s", version, desc)
            for sql in statements:
                await self.db.execute(sql)
            await self.db.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )

    async def _fetchall(self, sql: str, params: tuple, table: str) -> list[aiosqlite.Row]:
        try:
            async with self.db.execute(sql, params) as cursor:
                return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            raise StorageError(
                f"Failed to query {table}: {e}",
                context={"operation": "query", "table": table},
            ) from e

    async def _write(self, sql: str, params: tuple, table: str, operation: str) -> int:
        """Execute one statement and commit; returns lastrowid or rowcount."""
        async with self._tx_lock:
            try:
                cursor = await self.db.execute(sql, params)
                await self.db.commit()
                return cursor.lastrowid if operation == "insert" else cursor.rowcount
            except aiosqlite.Error as e:
                await self.db.rollback()
                raise StorageError(
                    f"Failed to {operation} {table}: {e}",
                    context={"operation": operation, "table": table},
                ) from e

    # --- Accounts & Holdings ---

    async def save_account(self, account: Account) -> None:
        await self._write(
            """INSERT OR REPLACE INTO accounts
               (id, household_id, name, type, currency, current_balance,
                is_active, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                account.id,
                account.household_id,
                account.name,
                account.type,
                account.currency,
                account.current_balance,
                int(account.is_active),
                _iso(account.updated_at),
            ),
            "accounts",
            "insert",
        )

    async def get_account(self, account_id: str) -> Account | None:
        rows = await self._fetchall(
            "SELECT * FROM accounts WHERE id = ?", (account_id,), "accounts"
        )
        return self._row_to_account(rows[0]) if rows else None

    async def list_active_accounts(
        self, household_id: str, account_type: AccountType
    ) -> list[Account]:
        rows = await self._fetchall(
            """SELECT * FROM accounts
               WHERE household_id = ? AND type = ? AND is_active = 1
               ORDER BY id""",
            (household_id, str(account_type)),
            "accounts",
        )
        return [self._row_to_account(row) for row in rows]

    async def save_stock_holding(self, holding: StockHolding) -> None:
        await self._write(
            """INSERT OR REPLACE INTO stocks
               (account_id, symbol, exchange, security_name, shares,
                current_price, price_updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                holding.account_id,
                holding.symbol,
                holding.exchange,
                holding.security_name,
                holding.shares,
                holding.current_price,
                _iso(holding.price_updated_at),
            ),
            "stocks",
            "insert",
        )

    async def get_stock_holding(self, account_id: str) -> StockHolding | None:
        rows = await self._fetchall(
            "SELECT * FROM stocks WHERE account_id = ?", (account_id,), "stocks"
        )
        if not rows:
            return None
        row = rows[0]
        return StockHolding(
            account_id=row["account_id"],
            symbol=row["symbol"],
            exchange=row["exchange"],
            security_name=row["security_name"],
            shares=row["shares"],
            current_price=row["current_price"],
            price_updated_at=_dt(row["price_updated_at"]),
        )

    async def save_crypto_holding(self, holding: CryptoHolding) -> None:
        await self._write(
            """INSERT OR REPLACE INTO crypto_assets
               (account_id, symbol, name, coingecko_id, holdings,
                current_price, price_updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                holding.account_id,
                holding.symbol,
                holding.name,
                holding.coingecko_id,
                holding.holdings,
                holding.current_price,
                _iso(holding.price_updated_at),
            ),
            "crypto_assets",
            "insert",
        )

    async def get_crypto_holding(self, account_id: str) -> CryptoHolding | None:
        rows = await self._fetchall(
            "SELECT * FROM crypto_assets WHERE account_id = ?",
            (account_id,),
            "crypto_assets",
        )
        if not rows:
            return None
        row = rows[0]
        return CryptoHolding(
            account_id=row["account_id"],
            symbol=row["symbol"],
            name=row["name"],
            coingecko_id=row["coingecko_id"],
            holdings=row["holdings"],
            current_price=row["current_price"],
            price_updated_at=_dt(row["price_updated_at"]),
        )

    async def apply_price_updates(self, updates: list[PriceUpdate]) -> int:
        """Write prices, balances and valuation rows in one transaction.

        Each update touches the detail row's price, the account's balance
        and appends one valuation row. Either all updates land or none do.
        Batches from concurrent callers never share a transaction.
        """
        if not updates:
            return 0
        async with self._tx_lock:
            try:
                for update in updates:
                    detail_table = _DETAIL_TABLES[update.account_type]
                    stamp = update.updated_at.isoformat()
                    await self.db.execute(
                        f"""UPDATE {detail_table}
                            SET current_price = ?, price_updated_at = ?, updated_at = ?
                            WHERE account_id = ?""",
                        (update.price, stamp, stamp, update.account_id),
                    )
                    await self.db.execute(
                        """UPDATE accounts SET current_balance = ?, updated_at = ?
                           WHERE id = ?""",
                        (update.balance, stamp, update.account_id),
                    )
                    await self._insert_valuation(update.valuation)
                await self.db.commit()
            except aiosqlite.Error as e:
                await self.db.rollback()
                raise StorageError(
                    f"Failed to apply price updates: {e}",
                    context={"operation": "update", "table": "accounts"},
                ) from e
        logger.debug("Applied %d price updates", len(updates))
        return len(updates)

    # --- Valuation History ---

    async def _insert_valuation(self, record: ValuationRecord) -> None:
        await self.db.execute(
            """INSERT INTO valuation_history
               (account_id, date, value, currency, source, underlying_price,
                quantity, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record.account_id,
                record.date.isoformat(),
                record.value,
                record.currency,
                str(record.source),
                record.underlying_price,
                record.quantity,
                _iso(record.created_at) or utcnow().isoformat(),
            ),
        )

    async def insert_valuation(self, record: ValuationRecord) -> None:
        """Append one valuation row (never replaces an existing one)."""
        async with self._tx_lock:
            try:
                await self._insert_valuation(record)
                await self.db.commit()
            except aiosqlite.Error as e:
                await self.db.rollback()
                raise StorageError(
                    f"Failed to insert valuation: {e}",
                    context={"operation": "insert", "table": "valuation_history"},
                ) from e

    async def get_valuation_history(
        self,
        account_id: str,
        start: date | None = None,
        end: date | None = None,
        limit: int | None = None,
    ) -> list[ValuationRecord]:
        """Rows in insertion order within each day, oldest day first."""
        query = "SELECT * FROM valuation_history WHERE account_id = ?"
        params: list = [account_id]
        if start is not None:
            query += " AND date >= ?"
            params.append(start.isoformat())
        if end is not None:
            query += " AND date <= ?"
            params.append(end.isoformat())
        query += " ORDER BY date ASC, id ASC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        rows = await self._fetchall(query, tuple(params), "valuation_history")
        return [self._row_to_valuation(row) for row in rows]

    async def get_latest_valuation(self, account_id: str) -> ValuationRecord | None:
        rows = await self._fetchall(
            """SELECT * FROM valuation_history WHERE account_id = ?
               ORDER BY date DESC, id DESC LIMIT 1""",
            (account_id,),
            "valuation_history",
        )
        return self._row_to_valuation(rows[0]) if rows else None

    # --- Data Sources ---

    async def save_data_source(self, source: DataSource) -> None:
        await self._write(
            """INSERT OR REPLACE INTO data_sources
               (household_id, type, provider, is_enabled, last_sync_at)
               VALUES (?, ?, ?, ?, ?)""",
            (
                source.household_id,
                source.type,
                source.provider,
                int(source.is_enabled),
                _iso(source.last_sync_at),
            ),
            "data_sources",
            "insert",
        )

    async def get_data_sources(self, household_id: str) -> list[DataSource]:
        rows = await self._fetchall(
            "SELECT * FROM data_sources WHERE household_id = ? ORDER BY provider",
            (household_id,),
            "data_sources",
        )
        return [
            DataSource(
                household_id=row["household_id"],
                type=row["type"],
                provider=row["provider"],
                is_enabled=bool(row["is_enabled"]),
                last_sync_at=_dt(row["last_sync_at"]),
            )
            for row in rows
        ]

    async def touch_data_source(
        self, household_id: str | None, provider: str, synced_at: datetime
    ) -> int:
        """Stamp last_sync_at for a provider; all households when id is None."""
        if household_id is None:
            return await self._write(
                "UPDATE data_sources SET last_sync_at = ? WHERE provider = ?",
                (synced_at.isoformat(), provider),
                "data_sources",
                "update",
            )
        return await self._write(
            """UPDATE data_sources SET last_sync_at = ?
               WHERE household_id = ? AND provider = ?""",
            (synced_at.isoformat(), household_id, provider),
            "data_sources",
            "update",
        )

    async def last_provider_sync(self, provider: str) -> datetime | None:
        rows = await self._fetchall(
            "SELECT MAX(last_sync_at) AS last FROM data_sources WHERE provider = ?",
            (provider,),
            "data_sources",
        )
        return _dt(rows[0]["last"]) if rows else None

    # --- Exchange Rates ---

    async def save_exchange_rate(self, record: ExchangeRateRecord) -> int:
        return await self._write(
            """INSERT INTO exchange_rates (from_currency, to_currency, rate, date, source)
               VALUES (?, ?, ?, ?, ?)""",
            (
                record.from_currency,
                record.to_currency,
                record.rate,
                record.date.isoformat(),
                record.source,
            ),
            "exchange_rates",
            "insert",
        )

    async def update_exchange_rate(
        self, record_id: int, rate: float, observed_at: datetime
    ) -> None:
        await self._write(
            "UPDATE exchange_rates SET rate = ?, date = ? WHERE id = ?",
            (rate, observed_at.isoformat(), record_id),
            "exchange_rates",
            "update",
        )

    async def find_exchange_rate(
        self, from_currency: str, to_currency: str, since: datetime
    ) -> ExchangeRateRecord | None:
        """Most recent stored rate for the pair observed at or after ``since``."""
        rows = await self._fetchall(
            """SELECT * FROM exchange_rates
               WHERE from_currency = ? AND to_currency = ? AND date >= ?
               ORDER BY date DESC, id DESC LIMIT 1""",
            (from_currency.upper(), to_currency.upper(), since.isoformat()),
            "exchange_rates",
        )
        if not rows:
            return None
        row = rows[0]
        return ExchangeRateRecord(
            id=row["id"],
            from_currency=row["from_currency"],
            to_currency=row["to_currency"],
            rate=row["rate"],
            date=datetime.fromisoformat(row["date"]),
            source=row["source"],
        )

    # --- Row Mapping ---

    @staticmethod
    def _row_to_account(row: aiosqlite.Row) -> Account:
        return Account(
            id=row["id"],
            household_id=row["household_id"],
            name=row["name"],
            type=row["type"],
            currency=row["currency"],
            current_balance=row["current_balance"],
            is_active=bool(row["is_active"]),
            updated_at=_dt(row["updated_at"]),
        )

    @staticmethod
    def _row_to_valuation(row: aiosqlite.Row) -> ValuationRecord:
        return ValuationRecord(
            id=row["id"],
            account_id=row["account_id"],
            date=date.fromisoformat(row["date"]),
            value=row["value"],
            currency=row["currency"],
            source=ValuationSource(row["source"]),
            underlying_price=row["underlying_price"],
            quantity=row["quantity"],
            created_at=_dt(row["created_at"]),
        )


async def create_store(config: StorageConfig) -> SqliteAccountStore:
    """Create and initialize the account store."""
    store = SqliteAccountStore(config)
    await store.initialize()
    return store
