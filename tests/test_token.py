import pytest
import sys
import os
from unittest.mock import patch, MagicMock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from arca.economy.token_engine import InMemoryToken, TokenEngine


def test_in_memory_balances():
    token = InMemoryToken()
    assert token.balance_of("0xX") == 0

    assert token.mint("0xX", 500) == 500
    assert token.mint("0xX", 250) == 750
    assert token.balance_of("0xX") == 750
    assert token.balance_of("0xY") == 0


def test_mint_rejects_negative():
    token = InMemoryToken()
    with pytest.raises(ValueError):
        token.mint("0xX", -1)
    assert token.balance_of("0xX") == 0


def _mock_conn(fetchone_result):
    cursor = MagicMock()
    cursor.fetchone.return_value = fetchone_result
    conn = MagicMock()
    conn.__enter__.return_value = conn
    conn.cursor.return_value.__enter__.return_value = cursor
    return conn, cursor


@patch("arca.economy.token_engine.psycopg2.connect")
def test_token_engine_reads_balance(mock_connect):
    conn, cursor = _mock_conn({"balance": 1200})
    mock_connect.return_value = conn

    engine = TokenEngine("postgresql://test/arca")
    assert engine.balance_of("0xX") == 1200

    sql, params = cursor.execute.call_args[0]
    assert "FROM token_balances" in sql
    assert params == ("0xX",)


@patch("arca.economy.token_engine.psycopg2.connect")
def test_token_engine_unknown_identity_is_zero(mock_connect):
    conn, _ = _mock_conn(None)
    mock_connect.return_value = conn

    engine = TokenEngine("postgresql://test/arca")
    assert engine.balance_of("0xNobody") == 0


@patch("arca.economy.token_engine.psycopg2.connect")
def test_token_engine_closes_every_connection(mock_connect):
    conn, _ = _mock_conn({"balance": 5})
    mock_connect.return_value = conn

    engine = TokenEngine("postgresql://test/arca")
    engine.balance_of("0xX")
    engine.balance_of("0xY")

    assert mock_connect.call_count == 3
    assert conn.close.call_count == 3
