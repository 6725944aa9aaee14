"""
arca/memory/persistence.py

Saves and loads registry snapshots from PostgreSQL.
The registry itself keeps nothing on disk; call save() after the
operations you want to survive a restart.

Requires: pip install psycopg2-binary
Set env var: DATABASE_URL=postgresql://localhost/arca
"""

import os
import json
import psycopg2
import psycopg2.extras
from loguru import logger
from contextlib import contextmanager
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.environ.get("DATABASE_URL", "postgresql://localhost/arca")

SCHEMA = """
    CREATE TABLE IF NOT EXISTS arca_meta (
        key   VARCHAR(64) PRIMARY KEY,
        value JSONB NOT NULL
    );
    CREATE TABLE IF NOT EXISTS arca_city (
        id                 INTEGER PRIMARY KEY DEFAULT 1,
        name               TEXT NOT NULL,
        current_population NUMERIC(78, 0) NOT NULL,
        max_population     NUMERIC(78, 0) NOT NULL,
        treasury_balance   NUMERIC(78, 0) NOT NULL,
        created_at         BIGINT NOT NULL,
        is_initialized     BOOLEAN NOT NULL
    );
    CREATE TABLE IF NOT EXISTS arca_agents (
        identity         VARCHAR(64) PRIMARY KEY,
        position         INTEGER NOT NULL,
        name             TEXT NOT NULL,
        owner            VARCHAR(64) NOT NULL,
        persona          VARCHAR(16) NOT NULL,
        balance          NUMERIC(78, 0) NOT NULL,
        traits           JSONB NOT NULL,
        date_of_birth    BIGINT NOT NULL,
        is_alive         BOOLEAN NOT NULL,
        reputation_score INTEGER NOT NULL
    );
    CREATE TABLE IF NOT EXISTS arca_owner_index (
        owner    VARCHAR(64) PRIMARY KEY,
        identity VARCHAR(64) NOT NULL
    );
    CREATE TABLE IF NOT EXISTS arca_roles (
        role    VARCHAR(32) NOT NULL,
        account VARCHAR(64) NOT NULL,
        PRIMARY KEY (role, account)
    );
    CREATE TABLE IF NOT EXISTS arca_transitions (
        seq   INTEGER PRIMARY KEY,
        entry JSONB NOT NULL
    );
"""


def _json(value):
    """JSONB columns come back as dicts, but plain TEXT fallbacks as strings."""
    return json.loads(value) if isinstance(value, str) else value


class RegistryPersistence:

    def __init__(self, db_url: str = DATABASE_URL):
        self.db_url = db_url

    @contextmanager
    def connect(self):
        conn = psycopg2.connect(self.db_url)
        conn.autocommit = False
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_schema(self):
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(SCHEMA)
        logger.info("💾 Registry schema ready.")

    def save(self, registry) -> dict:
        """
        Replace whatever was saved with the registry's current state.
        Returns the snapshot that was written.
        """
        snap = registry.snapshot()
        city = snap["city"]

        with self.connect() as conn:
            cur = conn.cursor()
            for table in ("arca_city", "arca_agents", "arca_owner_index",
                          "arca_roles", "arca_transitions"):
                cur.execute(f"DELETE FROM {table}")

            cur.execute("""
                INSERT INTO arca_meta (key, value)
                VALUES ('default_traits', %s)
                ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value
            """, (json.dumps(snap["default_traits"]),))

            cur.execute("""
                INSERT INTO arca_city
                    (id, name, current_population, max_population,
                     treasury_balance, created_at, is_initialized)
                VALUES
                    (1, %(name)s, %(current_population)s, %(max_population)s,
                     %(treasury_balance)s, %(created_at)s, %(is_initialized)s)
            """, city)

            for position, agent in enumerate(snap["agents"]):
                cur.execute("""
                    INSERT INTO arca_agents
                        (identity, position, name, owner, persona, balance, traits,
                         date_of_birth, is_alive, reputation_score)
                    VALUES
                        (%(identity)s, %(position)s, %(name)s, %(owner)s, %(persona)s, %(balance)s,
                         %(traits)s, %(date_of_birth)s, %(is_alive)s, %(reputation_score)s)
                """, {**agent, "position": position, "traits": json.dumps(agent["traits"])})

            for owner, identity in snap["owner_to_agent"].items():
                cur.execute(
                    "INSERT INTO arca_owner_index (owner, identity) VALUES (%s, %s)",
                    (owner, identity),
                )

            for role, members in snap["roles"].items():
                for account in members:
                    cur.execute(
                        "INSERT INTO arca_roles (role, account) VALUES (%s, %s)",
                        (role, account),
                    )

            for entry in snap["transitions"]:
                cur.execute(
                    "INSERT INTO arca_transitions (seq, entry) VALUES (%s, %s)",
                    (entry["seq"], json.dumps(entry)),
                )

        logger.info(
            f"💾 Registry saved: {len(snap['agents'])} agents, "
            f"{len(snap['transitions'])} transitions"
        )
        return snap

    def load(self) -> dict | None:
        """Returns a snapshot for Registry.restore(), or None if nothing was saved."""
        with self.connect() as conn:
            cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            cur.execute("SELECT value FROM arca_meta WHERE key = 'default_traits'")
            row = cur.fetchone()
            if not row:
                return None
            default_traits = _json(row["value"])

            cur.execute("SELECT * FROM arca_city WHERE id = 1")
            city_row = cur.fetchone()

            cur.execute("SELECT * FROM arca_agents ORDER BY position")
            agent_rows = [dict(r) for r in cur.fetchall()]

            cur.execute("SELECT owner, identity FROM arca_owner_index")
            owner_rows = cur.fetchall()

            cur.execute("SELECT role, account FROM arca_roles ORDER BY role, account")
            role_rows = cur.fetchall()

            cur.execute("SELECT entry FROM arca_transitions ORDER BY seq")
            transitions = [_json(r["entry"]) for r in cur.fetchall()]

        city = {}
        if city_row:
            city = {
                "name": city_row["name"],
                "current_population": int(city_row["current_population"]),
                "max_population": int(city_row["max_population"]),
                "treasury_balance": int(city_row["treasury_balance"]),
                "created_at": int(city_row["created_at"]),
                "is_initialized": bool(city_row["is_initialized"]),
            }

        agents = []
        for r in agent_rows:
            r.pop("position", None)
            agents.append({
                **r,
                "balance": int(r["balance"]),
                "traits": _json(r["traits"]),
            })

        roles: dict[str, list[str]] = {}
        for r in role_rows:
            roles.setdefault(r["role"], []).append(r["account"])

        logger.info(f"🔄 Loaded registry: {len(agents)} agents, {len(transitions)} transitions")
        return {
            "city": city,
            "default_traits": default_traits,
            "agents": agents,
            "owner_to_agent": {r["owner"]: r["identity"] for r in owner_rows},
            "roles": roles,
            "transitions": transitions,
        }
