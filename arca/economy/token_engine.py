"""
arca/economy/token_engine.py

Balance lookups against the ARKA token.

The registry only ever asks one question of the token: balance_of(identity).
The answer is logged in AgentCreated and never stored or checked.
"""

import os
from contextlib import closing
import psycopg2
from psycopg2.extras import RealDictCursor
from loguru import logger
from dotenv import load_dotenv

load_dotenv()


class InMemoryToken:
    """
    A token whose balances live in a dict.
    Used by the demo runner and tests.
    """

    def __init__(self, symbol: str = "ARKA", balances: dict[str, int] = None):
        self.symbol = symbol
        self._balances: dict[str, int] = dict(balances or {})

    def balance_of(self, identity: str) -> int:
        return self._balances.get(identity, 0)

    def mint(self, identity: str, amount: int) -> int:
        """Credit amount to identity. Returns the new balance."""
        if amount < 0:
            raise ValueError(f"Cannot mint a negative amount ({amount})")
        self._balances[identity] = self.balance_of(identity) + amount
        logger.info(f"🏦 {amount} {self.symbol} minted to {identity[:10]}.")
        return self._balances[identity]

    def __repr__(self) -> str:
        return f"InMemoryToken({self.symbol}, holders={len(self._balances)})"


class TokenEngine:
    """
    Read-only view of token balances kept in PostgreSQL.
    Whatever indexes the on-chain token writes token_balances;
    this class only reads it.
    """

    def __init__(self, db_url: str = None):
        self.db_url = db_url or os.getenv("DATABASE_URL")
        self._init_db()

    def _get_conn(self):
        return psycopg2.connect(self.db_url)

    def _init_db(self):
        with closing(self._get_conn()) as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS token_balances (
                        identity     VARCHAR(64) PRIMARY KEY,
                        balance      NUMERIC(78, 0) NOT NULL DEFAULT 0,
                        last_updated TIMESTAMPTZ DEFAULT NOW()
                    );
                """)
            conn.commit()
        logger.info("💰 Token engine initialized.")

    def balance_of(self, identity: str) -> int:
        """Current balance for identity, 0 if it has never held tokens"""
        with closing(self._get_conn()) as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT balance FROM token_balances WHERE identity = %s",
                    (identity,)
                )
                row = cur.fetchone()
                return int(row["balance"]) if row else 0
