"""Database schema definitions for the apitag code model."""

# Symbols and the reference index
SCHEMA_CODE_MODEL = """
-- Symbol nodes (types, methods, fields)
CREATE TABLE IF NOT EXISTS symbols (
    id INTEGER PRIMARY KEY,
    fqn TEXT NOT NULL UNIQUE,
    kind TEXT NOT NULL CHECK(kind IN ('type', 'method', 'field')),
    name TEXT NOT NULL,
    parent_fqn TEXT,
    file_path TEXT,
    line_number INTEGER,
    modifiers TEXT,
    annotations TEXT,
    is_interface INTEGER NOT NULL DEFAULT 0,
    interfaces TEXT,
    parameters TEXT,
    return_type TEXT,
    type_fqn TEXT,
    is_constructor INTEGER NOT NULL DEFAULT 0,
    documentation TEXT,
    body TEXT,
    source TEXT,
    writable INTEGER NOT NULL DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_symbols_fqn ON symbols(fqn);
CREATE INDEX IF NOT EXISTS idx_symbols_kind ON symbols(kind);
CREATE INDEX IF NOT EXISTS idx_symbols_name ON symbols(name);
CREATE INDEX IF NOT EXISTS idx_symbols_parent ON symbols(parent_fqn);

-- Reference index (no FK constraint - edges can reference external symbols)
CREATE TABLE IF NOT EXISTS edges (
    id INTEGER PRIMARY KEY,
    from_fqn TEXT NOT NULL,
    to_fqn TEXT NOT NULL,
    relation TEXT NOT NULL,
    metadata TEXT
);

CREATE INDEX IF NOT EXISTS idx_edges_from ON edges(from_fqn);
CREATE INDEX IF NOT EXISTS idx_edges_to ON edges(to_fqn);
CREATE INDEX IF NOT EXISTS idx_edges_to_relation ON edges(to_fqn, relation);

-- Cascade delete triggers for edges table
CREATE TRIGGER IF NOT EXISTS edges_delete_outgoing_on_symbol_delete
    AFTER DELETE ON symbols
    FOR EACH ROW
    WHEN EXISTS (SELECT 1 FROM edges WHERE from_fqn = OLD.fqn)
BEGIN
    DELETE FROM edges WHERE from_fqn = OLD.fqn;
END;

CREATE TRIGGER IF NOT EXISTS edges_delete_incoming_on_symbol_delete
    AFTER DELETE ON symbols
    FOR EACH ROW
    WHEN EXISTS (SELECT 1 FROM edges WHERE to_fqn = OLD.fqn)
BEGIN
    DELETE FROM edges WHERE to_fqn = OLD.fqn;
END;

-- Index metadata (for tracking indexed state)
CREATE TABLE IF NOT EXISTS index_metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

# Edit history: one row per write transaction, one entry per edited symbol
SCHEMA_HISTORY = """
CREATE TABLE IF NOT EXISTS edit_history (
    id INTEGER PRIMARY KEY,
    label TEXT NOT NULL,
    undone INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS edit_history_entries (
    id INTEGER PRIMARY KEY,
    history_id INTEGER NOT NULL,
    fqn TEXT NOT NULL,
    field TEXT NOT NULL CHECK(field IN ('documentation', 'annotations')),
    old_value TEXT,
    new_value TEXT,
    FOREIGN KEY (history_id) REFERENCES edit_history(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_history_entries_history ON edit_history_entries(history_id);
"""

ALL_SCHEMAS = {
    "code_model": SCHEMA_CODE_MODEL,
    "history": SCHEMA_HISTORY,
}

ALL_TABLES = ["edit_history_entries", "edit_history", "edges", "symbols", "index_metadata"]
