"""SQLite schema for the documentation index.

The ``documents_fts`` FTS5 table is an external-content index over
``documents(title, content)`` kept in sync by triggers, so every document
write is immediately visible to lexical search.

``idx_sync_history_one_running`` is a partial unique index: inserting a
second RUNNING row for a version fails inside SQLite itself, which makes
"start a run unless one is running" a single atomic statement.
"""

SCHEMA_STATEMENTS: list[str] = [
    """\
CREATE TABLE IF NOT EXISTS libraries (
    id            TEXT PRIMARY KEY,
    name          TEXT NOT NULL UNIQUE,
    display_name  TEXT NOT NULL DEFAULT '',
    source_type   TEXT NOT NULL,
    source_url    TEXT NOT NULL DEFAULT '',
    category      TEXT NOT NULL DEFAULT '',
    tags          TEXT NOT NULL DEFAULT '[]',
    created_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
    """\
CREATE TABLE IF NOT EXISTS library_versions (
    id          TEXT PRIMARY KEY,
    library_id  TEXT NOT NULL REFERENCES libraries(id) ON DELETE CASCADE,
    version     TEXT NOT NULL,
    is_latest   INTEGER NOT NULL DEFAULT 0,
    status      TEXT NOT NULL DEFAULT 'ACTIVE',
    docs_path   TEXT,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    UNIQUE(library_id, version)
);
""",
    """\
CREATE UNIQUE INDEX IF NOT EXISTS idx_versions_one_latest
    ON library_versions(library_id) WHERE is_latest = 1;
""",
    """\
CREATE TABLE IF NOT EXISTS documents (
    id            TEXT PRIMARY KEY,
    version_id    TEXT NOT NULL REFERENCES library_versions(id) ON DELETE CASCADE,
    title         TEXT NOT NULL DEFAULT '',
    path          TEXT NOT NULL,
    content       TEXT NOT NULL DEFAULT '',
    format        TEXT NOT NULL,
    content_hash  TEXT NOT NULL,
    metadata      TEXT NOT NULL DEFAULT '{}',
    created_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    UNIQUE(version_id, path)
);
""",
    """\
CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(
    title,
    content,
    content='documents',
    content_rowid='rowid',
    tokenize='porter unicode61'
);
""",
    """\
CREATE TRIGGER IF NOT EXISTS documents_ai AFTER INSERT ON documents BEGIN
    INSERT INTO documents_fts(rowid, title, content)
    VALUES (new.rowid, new.title, new.content);
END;
""",
    """\
CREATE TRIGGER IF NOT EXISTS documents_ad AFTER DELETE ON documents BEGIN
    INSERT INTO documents_fts(documents_fts, rowid, title, content)
    VALUES ('delete', old.rowid, old.title, old.content);
END;
""",
    """\
CREATE TRIGGER IF NOT EXISTS documents_au AFTER UPDATE OF title, content ON documents BEGIN
    INSERT INTO documents_fts(documents_fts, rowid, title, content)
    VALUES ('delete', old.rowid, old.title, old.content);
    INSERT INTO documents_fts(rowid, title, content)
    VALUES (new.rowid, new.title, new.content);
END;
""",
    """\
CREATE TABLE IF NOT EXISTS document_chunks (
    id           TEXT PRIMARY KEY,
    document_id  TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    chunk_index  INTEGER NOT NULL,
    text         TEXT NOT NULL,
    token_count  INTEGER NOT NULL DEFAULT 0,
    embedded     INTEGER NOT NULL DEFAULT 0,
    created_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    UNIQUE(document_id, chunk_index)
);
""",
    """\
CREATE TABLE IF NOT EXISTS code_examples (
    id           TEXT PRIMARY KEY,
    document_id  TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    language     TEXT NOT NULL,
    code         TEXT NOT NULL,
    position     INTEGER NOT NULL DEFAULT 0
);
""",
    """\
CREATE TABLE IF NOT EXISTS sync_history (
    id                   TEXT PRIMARY KEY,
    version_id           TEXT NOT NULL REFERENCES library_versions(id) ON DELETE CASCADE,
    status               TEXT NOT NULL,
    started_at           TEXT NOT NULL,
    completed_at         TEXT,
    documents_processed  INTEGER NOT NULL DEFAULT 0,
    chunks_created       INTEGER NOT NULL DEFAULT 0,
    error_message        TEXT,
    metadata             TEXT NOT NULL DEFAULT '{}'
);
""",
    """\
CREATE UNIQUE INDEX IF NOT EXISTS idx_sync_history_one_running
    ON sync_history(version_id) WHERE status = 'RUNNING';
""",
    "CREATE INDEX IF NOT EXISTS idx_documents_version ON documents(version_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON document_chunks(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_code_examples_document ON code_examples(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_sync_history_version ON sync_history(version_id, started_at);",
]
