import sqlite3
import threading
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from cricauction.core.errors import ConcurrencyConflict
from cricauction.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for persistent storage.

    Provides:
    1. Entity store for registry records (tournaments, players, teams),
       stored as JSON text keyed by (kind, id).
    2. Auction records with a version column for optimistic writes.
    3. Bids, indexed by auction and kept in acceptance order.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        # Ensure directory exists
        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            # WAL lets the clock thread read while a bid commits
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            # 1. Registry entities
            conn.execute("""
                CREATE TABLE IF NOT EXISTS entities (
                    kind TEXT NOT NULL,
                    entity_id TEXT NOT NULL,
                    parent_id TEXT,
                    data TEXT NOT NULL,
                    PRIMARY KEY (kind, entity_id)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_entity_parent ON entities(kind, parent_id);")

            # 2. Auctions
            conn.execute("""
                CREATE TABLE IF NOT EXISTS auctions (
                    auction_id TEXT PRIMARY KEY,
                    tournament_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    data TEXT NOT NULL
                )
            """)

            # 3. Bids (seq preserves acceptance order)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS bids (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    bid_id TEXT NOT NULL UNIQUE,
                    auction_id TEXT NOT NULL,
                    player_id TEXT NOT NULL,
                    data TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_bid_auction ON bids(auction_id);")

    def close(self):
        if hasattr(self._conn_local, "conn"):
            self._conn_local.conn.close()
            del self._conn_local.conn

    # =========================================================================
    # Entity Operations
    # =========================================================================

    def put_entity(self, kind: str, entity_id: str, data: str, parent_id: Optional[str] = None):
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT INTO entities (kind, entity_id, parent_id, data) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(kind, entity_id) DO UPDATE SET parent_id = excluded.parent_id, data = excluded.data",
                (kind, entity_id, parent_id, data)
            )

    def get_entity(self, kind: str, entity_id: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT data FROM entities WHERE kind = ? AND entity_id = ?", (kind, entity_id)
        )
        row = cursor.fetchone()
        return row['data'] if row else None

    def list_entities(self, kind: str, parent_id: Optional[str] = None) -> List[str]:
        conn = self._get_conn()
        if parent_id is None:
            cursor = conn.execute(
                "SELECT data FROM entities WHERE kind = ? ORDER BY rowid", (kind,)
            )
        else:
            cursor = conn.execute(
                "SELECT data FROM entities WHERE kind = ? AND parent_id = ? ORDER BY rowid",
                (kind, parent_id)
            )
        return [row['data'] for row in cursor]

    # =========================================================================
    # Auction Operations
    # =========================================================================

    def get_auction(self, auction_id: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT data FROM auctions WHERE auction_id = ?", (auction_id,))
        row = cursor.fetchone()
        return row['data'] if row else None

    def get_auction_version(self, auction_id: str) -> Optional[int]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT version FROM auctions WHERE auction_id = ?", (auction_id,))
        row = cursor.fetchone()
        return row['version'] if row else None

    def list_auctions(self) -> List[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT data FROM auctions ORDER BY rowid")
        return [row['data'] for row in cursor]

    def get_bids(self, auction_id: str) -> List[str]:
        """Bid records of an auction in acceptance order."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT data FROM bids WHERE auction_id = ? ORDER BY seq ASC", (auction_id,)
        )
        return [row['data'] for row in cursor]

    def persist_auction_update(
        self,
        auction_id: str,
        tournament_id: str,
        status: str,
        version: int,
        expected_version: int,
        auction_data: str,
        bids: Sequence[Tuple[str, str, str]],
        teams: Sequence[Tuple[str, str, str]],
    ):
        """
        Atomically write an auction, its changed bids and changed teams.

        Args:
            auction_id: Auction to write
            tournament_id: Owning tournament
            status: Auction status (indexed copy)
            version: New version
            expected_version: Version the writer loaded (0 if new)
            auction_data: Serialized auction
            bids: (bid_id, player_id, data) to upsert
            teams: (team_id, tournament_id, data) to upsert

        Raises:
            ConcurrencyConflict: stored version differs from expected_version
        """
        conn = self._get_conn()
        with conn:
            if expected_version == 0:
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO auctions (auction_id, tournament_id, status, version, data) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (auction_id, tournament_id, status, version, auction_data)
                )
            else:
                cursor = conn.execute(
                    "UPDATE auctions SET status = ?, version = ?, data = ? "
                    "WHERE auction_id = ? AND version = ?",
                    (status, version, auction_data, auction_id, expected_version)
                )
            if cursor.rowcount != 1:
                raise ConcurrencyConflict(
                    f"Auction {auction_id} changed underneath (expected version {expected_version})"
                )

            # Upsert bids, keeping their original sequence
            for bid_id, player_id, data in bids:
                cursor = conn.execute(
                    "UPDATE bids SET data = ? WHERE bid_id = ?", (data, bid_id)
                )
                if cursor.rowcount == 0:
                    conn.execute(
                        "INSERT INTO bids (bid_id, auction_id, player_id, data) VALUES (?, ?, ?, ?)",
                        (bid_id, auction_id, player_id, data)
                    )

            for team_id, team_tournament_id, data in teams:
                conn.execute(
                    "INSERT INTO entities (kind, entity_id, parent_id, data) VALUES (?, ?, ?, ?) "
                    "ON CONFLICT(kind, entity_id) DO UPDATE SET parent_id = excluded.parent_id, data = excluded.data",
                    ("team", team_id, team_tournament_id, data)
                )
