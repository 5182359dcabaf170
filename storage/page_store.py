"""
storage/page_store.py
Persistent record of downloaded chapter pages and declared chapter sizes.
"""

import sqlite3
from contextlib import closing

from rich.console import Console

from errors import PersistenceFailed

console = Console()

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS info (
        identifier VARCHAR(36) PRIMARY KEY,
        name VARCHAR(256) NOT NULL,
        description VARCHAR(2048),
        cover BLOB,
        small_cover BLOB,
        manga_format VARCHAR(32),
        manga_genre VARCHAR(256),
        content_rating VARCHAR(32)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pages (
        identifier VARCHAR(36) NOT NULL,
        page INTEGER NOT NULL,
        data BLOB NOT NULL,
        info_id VARCHAR(36) REFERENCES info(identifier)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS records (
        identifier VARCHAR(36) PRIMARY KEY,
        pages INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_info_id ON pages (info_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_identifier_page ON pages (identifier, page)",
)


class PageStore:
    """Handles the manga database: pages, chapter records and manga info."""

    def __init__(self, db_file="manga.db"):
        self.db_file = str(db_file)
        self.create_schema()

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_file, timeout=30.0)
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA busy_timeout=30000")
        return conn

    def create_schema(self):
        with closing(self.connect()) as conn, conn:
            for statement in SCHEMA:
                conn.execute(statement)

    # -------------------------------------------------------
    # Chapter pages
    # -------------------------------------------------------

    def stored_indices(self, chapter_id: str) -> set:
        with closing(self.connect()) as conn:
            rows = conn.execute(
                "SELECT page FROM pages WHERE identifier = ?", (chapter_id,)
            ).fetchall()
        return {row[0] for row in rows}

    def persist_pages(self, chapter_id: str, ordered_pages):
        """
        Commit a batch of (page index, bytes) in one transaction.
        Either every page of the batch is stored or none is.
        """
        if not ordered_pages:
            return
        try:
            with closing(self.connect()) as conn, conn:
                conn.executemany(
                    "INSERT OR REPLACE INTO pages (identifier, page, data, info_id) "
                    "VALUES (?, ?, ?, (SELECT info_id FROM pages WHERE identifier = ? LIMIT 1))",
                    [(chapter_id, index, sqlite3.Binary(blob), chapter_id) for index, blob in ordered_pages],
                )
        except sqlite3.Error as e:
            console.log(f"[red]Failed to persist {len(ordered_pages)} pages for {chapter_id}:[/red] {e}")
            raise PersistenceFailed(chapter_id, str(e)) from e

    def get_page(self, chapter_id: str, index: int):
        with closing(self.connect()) as conn:
            row = conn.execute(
                "SELECT data FROM pages WHERE identifier = ? AND page = ?", (chapter_id, index)
            ).fetchone()
        return bytes(row[0]) if row else None

    # -------------------------------------------------------
    # Chapter records
    # -------------------------------------------------------

    def record_chapter_size(self, chapter_id: str, count: int):
        # Upsert; a chapter's declared size only ever grows.
        try:
            with closing(self.connect()) as conn, conn:
                conn.execute(
                    "INSERT INTO records (identifier, pages) VALUES (?, ?) "
                    "ON CONFLICT(identifier) DO UPDATE SET pages = MAX(pages, excluded.pages)",
                    (chapter_id, count),
                )
        except sqlite3.Error as e:
            raise PersistenceFailed(chapter_id, str(e)) from e

    def chapter_size(self, chapter_id: str):
        with closing(self.connect()) as conn:
            row = conn.execute(
                "SELECT pages FROM records WHERE identifier = ?", (chapter_id,)
            ).fetchone()
        return row[0] if row else None

    def missing_indices(self, chapter_id: str) -> list:
        """Page indices still absent for a chapter whose size is known."""
        size = self.chapter_size(chapter_id)
        if size is None:
            return []
        stored = self.stored_indices(chapter_id)
        return [i for i in range(1, size + 1) if i not in stored]

    # -------------------------------------------------------
    # Manga info
    # -------------------------------------------------------

    def save_info(self, info):
        try:
            with closing(self.connect()) as conn, conn:
                conn.execute(
                    # Upsert in place; a REPLACE would delete a row that pages reference.
                    "INSERT INTO info (identifier, name, description, cover, small_cover, "
                    "manga_format, manga_genre, content_rating) VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(identifier) DO UPDATE SET name = excluded.name, "
                    "description = excluded.description, cover = excluded.cover, "
                    "small_cover = excluded.small_cover, manga_format = excluded.manga_format, "
                    "manga_genre = excluded.manga_genre, content_rating = excluded.content_rating",
                    (
                        info.identifier,
                        info.name,
                        info.description,
                        info.cover,
                        info.small_cover,
                        info.manga_format,
                        info.manga_genre,
                        info.content_rating,
                    ),
                )
        except sqlite3.Error as e:
            raise PersistenceFailed(info.identifier, str(e)) from e

    def get_info(self, manga_id: str):
        with closing(self.connect()) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute("SELECT * FROM info WHERE identifier = ?", (manga_id,)).fetchone()
        return dict(row) if row else None

    def link_chapter(self, chapter_id: str, manga_id: str):
        try:
            with closing(self.connect()) as conn, conn:
                conn.execute("UPDATE pages SET info_id = ? WHERE identifier = ?", (manga_id, chapter_id))
        except sqlite3.Error as e:
            raise PersistenceFailed(chapter_id, str(e)) from e
