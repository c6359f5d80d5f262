from __future__ import annotations

from feedsync.infra import SQLiteManager


def test_sqlite_manager_initialises_schema(tmp_path) -> None:
    manager = SQLiteManager()
    conn = manager.connect(tmp_path / "content.db")
    columns = conn.execute("PRAGMA table_info(content_records)").fetchall()
    column_names = [row["name"] for row in columns]
    assert {"key", "text", "metadata", "updated_at"}.issubset(column_names)


def test_sqlite_manager_reuses_connections(tmp_path) -> None:
    manager = SQLiteManager()
    path = tmp_path / "nested" / "content.db"
    first = manager.connect(path)
    assert manager.connect(path) is first
    assert path.exists()


def test_sqlite_manager_close_then_reconnect_keeps_rows(tmp_path) -> None:
    manager = SQLiteManager()
    path = tmp_path / "content.db"
    conn = manager.connect(path)
    conn.execute("INSERT INTO content_records(key, text) VALUES ('item-1', 'hello')")
    conn.commit()
    manager.close(path)
    manager.close(path)

    reopened = manager.connect(path)
    assert reopened is not conn
    row = reopened.execute("SELECT text FROM content_records WHERE key = 'item-1'").fetchone()
    assert row["text"] == "hello"
