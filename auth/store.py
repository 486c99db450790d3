"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper.
AccountStore is the repository; _row_to_account is the mapper.
Route and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is enforced by the schema. The credential service checks for
  an existing account first for a friendly error, and still maps the
  IntegrityError from a concurrent insert to a conflict.

  One-time codes are consumed with a conditional UPDATE (consume_otp) so a
  code can succeed at most once even under concurrent requests.

Connection handling:
  One AccountStore is built at process start (api/main.py lifespan) from the
  DATABASE_URL connection string and injected through app.state. There is no
  module-level engine.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.models import Account

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("is_verified", Integer, nullable=False, server_default="0"),
    Column("verify_otp", String(16), nullable=False, server_default=""),
    Column("verify_otp_expires_at", BigInteger, nullable=False, server_default="0"),
    Column("reset_otp", String(16), nullable=False, server_default=""),
    Column("reset_otp_expires_at", BigInteger, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore("sqlite:///authflow.db")
        account_id = store.create_account(Account(email="a@x.com", name="A", hashed_password=hash_password("p1")))
        account = store.get_by_email("a@x.com")
        store.close()
    """

    # Columns update_account() may touch. Identity (id, email, created_at) is
    # immutable once written.
    _MUTABLE_FIELDS: frozenset = frozenset(
        {
            "name",
            "hashed_password",
            "is_verified",
            "verify_otp",
            "verify_otp_expires_at",
            "reset_otp",
            "reset_otp_expires_at",
        }
    )

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_account(self, account: Account) -> int:
        """Insert a new account and return its assigned ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.insert().values(
                    email=account.email,
                    name=account.name,
                    hashed_password=account.hashed_password,
                    is_verified=1 if account.is_verified else 0,
                    verify_otp=account.verify_otp,
                    verify_otp_expires_at=account.verify_otp_expires_at,
                    reset_otp=account.reset_otp,
                    reset_otp_expires_at=account.reset_otp_expires_at,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_id(self, account_id: int) -> Account | None:
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_email(self, email: str) -> Account | None:
        """Look up an account by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.email == email)).fetchone()
        return _row_to_account(row) if row is not None else None

    def count_accounts(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_accounts)).scalar()
        return result or 0

    def update_account(self, account_id: int, **fields) -> bool:
        """Update mutable fields on an existing account in a single statement.

        Only keys in _MUTABLE_FIELDS are accepted; anything else raises
        ValueError. is_verified must be passed as bool.

        Returns True if a row was updated, False if account_id was not found.
        """
        unknown = set(fields) - self._MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown account fields: {unknown!r}")
        if not fields:
            return False
        if "is_verified" in fields:
            fields["is_verified"] = 1 if fields["is_verified"] else 0
        with self.engine.connect() as conn:
            result = conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def consume_otp(self, account_id: int, slot: str, code: str, now_ms: int, **fields) -> bool:
        """Clear a pending code slot and apply fields, only if code is still live.

        slot is "verify" or "reset". The match on the stored code and its
        expiry happens in the same UPDATE that clears it, so of two concurrent
        callers holding the same code at most one gets True.
        """
        if slot not in ("verify", "reset"):
            raise ValueError(f"Unknown code slot: {slot!r}")
        unknown = set(fields) - self._MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown account fields: {unknown!r}")
        if "is_verified" in fields:
            fields["is_verified"] = 1 if fields["is_verified"] else 0
        otp_col = _accounts.c[f"{slot}_otp"]
        expires_col = _accounts.c[f"{slot}_otp_expires_at"]
        stmt = (
            _accounts.update()
            .where(_accounts.c.id == account_id, otp_col == code, otp_col != "", expires_col > now_ms)
            .values({f"{slot}_otp": "", f"{slot}_otp_expires_at": 0, **fields})
        )
        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        is_verified=bool(row.is_verified),
        verify_otp=row.verify_otp or "",
        verify_otp_expires_at=int(row.verify_otp_expires_at or 0),
        reset_otp=row.reset_otp or "",
        reset_otp_expires_at=int(row.reset_otp_expires_at or 0),
        created_at=row.created_at,
    )
