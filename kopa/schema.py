SCHEMA_SQL = r"""
PRAGMA foreign_keys = ON;
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS clipboard_entries (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  content_type TEXT NOT NULL CHECK (content_type IN ('text', 'image')),
  created_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS text_entries (
  entry_id INTEGER PRIMARY KEY REFERENCES clipboard_entries(id) ON DELETE CASCADE,
  content TEXT NOT NULL
);

-- Reserved for image captures; nothing reads or writes it yet.
CREATE TABLE IF NOT EXISTS image_entries (
  entry_id INTEGER PRIMARY KEY REFERENCES clipboard_entries(id) ON DELETE CASCADE,
  content BLOB NOT NULL,
  mime_type TEXT NOT NULL
);

-- External-content index over text_entries, kept in step by the triggers below.
CREATE VIRTUAL TABLE IF NOT EXISTS text_entries_fts USING fts5(
  content,
  content = 'text_entries',
  content_rowid = 'entry_id'
);

CREATE TRIGGER IF NOT EXISTS text_entries_ai
  AFTER INSERT ON text_entries
BEGIN
  INSERT INTO text_entries_fts(rowid, content) VALUES (new.entry_id, new.content);
END;

CREATE TRIGGER IF NOT EXISTS text_entries_ad
  AFTER DELETE ON text_entries
BEGIN
  INSERT INTO text_entries_fts(text_entries_fts, rowid, content)
  VALUES ('delete', old.entry_id, old.content);
END;

CREATE INDEX IF NOT EXISTS idx_created_at ON clipboard_entries(created_at DESC);
"""
