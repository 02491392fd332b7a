import json
from datetime import datetime
from pathlib import Path

import aiosqlite
import numpy as np

import scribble.database as database
from scribble.constants import FUZZY_MIN_PREFIX, VECTOR_SCORE_SHIFT
from scribble.database import deserialize_embedding, serialize_embedding
from scribble.embedder import is_null_vector
from scribble.logging import get_logger
from scribble.search.base import SearchBackend
from scribble.search.fuzzy import similar_length_bounds, term_matches, tokenize
from scribble.search.types import Hit, IndexedDocument

logger = get_logger(__name__)

FTS_COLUMNS = ("title", "content", "tags")

_STOPWORDS = frozenset({
    "a", "an", "the", "and", "or", "but", "is", "are", "was", "were",
    "in", "on", "at", "to", "for", "of", "with", "by", "from",
    "it", "its", "this", "that", "these", "those",
    "i", "me", "my", "we", "our", "you", "your",
    "do", "does", "did", "has", "have", "had",
    "not", "no", "so", "if", "how", "what", "when", "where", "who", "which",
})


def _quote(term: str) -> str:
    return '"' + term.replace('"', '""') + '"'


def build_fts_query(query: str, variants: list[str] | None = None) -> str | None:
    """FTS5 query: OR between meaningful terms, each matched as a prefix.

    `variants` are indexed spellings close to a query term; they are OR-ed in
    as exact terms. Returns None if no usable terms remain.
    """
    terms = query.split()
    meaningful = [t for t in terms if t.lower() not in _STOPWORDS and len(t) > 1]
    if not meaningful:
        meaningful = [t for t in terms if t.strip('"')]
    if not meaningful:
        return None

    clauses = [_quote(t) + "*" for t in meaningful]
    seen = {t.lower() for t in meaningful}
    for variant in variants or []:
        if variant not in seen:
            seen.add(variant)
            clauses.append(_quote(variant))
    return " OR ".join(clauses)


def _source_clause(sources: set[str] | None, column: str) -> tuple[str, list[str]]:
    if not sources:
        return "", []
    ordered = sorted(sources)
    placeholders = ",".join("?" * len(ordered))
    return f" AND {column} IN ({placeholders})", ordered


class SqliteSearchBackend(SearchBackend):
    def __init__(self, db_path: Path, embedding_dim: int):
        self.db_path = db_path
        self.embedding_dim = embedding_dim
        self._conn: aiosqlite.Connection | None = None
        self._has_fts = False
        self._has_vec = False

    async def connect(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await database.connect(self.db_path, vec=True)
        await self._init_schema()

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("SqliteSearchBackend not connected")
        return self._conn

    @property
    def has_fts(self) -> bool:
        return self._has_fts

    @property
    def has_vec(self) -> bool:
        return self._has_vec

    async def _init_schema(self) -> None:
        await self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS documents (
                pk INTEGER PRIMARY KEY,
                id TEXT NOT NULL,
                owner_id TEXT NOT NULL,
                source TEXT NOT NULL,
                title TEXT,
                content TEXT,
                tags TEXT,
                created_at TEXT,
                updated_at TEXT,
                UNIQUE(owner_id, id)
            );

            CREATE INDEX IF NOT EXISTS idx_documents_owner ON documents(owner_id, source);
        """)

        try:
            await self.conn.execute("""
                CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(
                    title, content, tags,
                    content='documents',
                    content_rowid='pk'
                );
            """)
            await self.conn.executescript("""
                CREATE TRIGGER IF NOT EXISTS documents_ai AFTER INSERT ON documents BEGIN
                    INSERT INTO documents_fts(rowid, title, content, tags)
                    VALUES (new.pk, new.title, new.content, new.tags);
                END;

                CREATE TRIGGER IF NOT EXISTS documents_ad AFTER DELETE ON documents BEGIN
                    INSERT INTO documents_fts(documents_fts, rowid, title, content, tags)
                    VALUES ('delete', old.pk, old.title, old.content, old.tags);
                END;

                CREATE TRIGGER IF NOT EXISTS documents_au AFTER UPDATE ON documents BEGIN
                    INSERT INTO documents_fts(documents_fts, rowid, title, content, tags)
                    VALUES ('delete', old.pk, old.title, old.content, old.tags);
                    INSERT INTO documents_fts(rowid, title, content, tags)
                    VALUES (new.pk, new.title, new.content, new.tags);
                END;

                CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts_vocab USING fts5vocab(documents_fts, row);
            """)
            self._has_fts = True
        except Exception as e:
            logger.warning("Failed to create fts5 table: %s", e)
            self._has_fts = False

        try:
            await self.conn.execute(f"""
                CREATE VIRTUAL TABLE IF NOT EXISTS documents_vec USING vec0(
                    doc_pk INTEGER PRIMARY KEY,
                    owner_id text partition key,
                    source text,
                    embedding float[{self.embedding_dim}] distance_metric=cosine
                );
            """)
            self._has_vec = True
        except Exception as e:
            logger.warning("Failed to create vec0 table: %s", e)
            self._has_vec = False

        await self.conn.commit()

    def _row_to_document(self, row, embedding: np.ndarray | None = None) -> IndexedDocument:
        return IndexedDocument(
            id=row["id"],
            owner_id=row["owner_id"],
            source=row["source"],
            title=row["title"] or "",
            content=row["content"] or "",
            tags=frozenset(json.loads(row["tags"])) if row["tags"] else frozenset(),
            embedding=embedding,
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    async def _pk(self, owner_id: str, document_id: str) -> int | None:
        rows = await self.conn.execute_fetchall(
            "SELECT pk FROM documents WHERE owner_id = ? AND id = ?",
            (owner_id, document_id),
        )
        return rows[0]["pk"] if rows else None

    async def upsert(self, doc: IndexedDocument) -> None:
        tags_json = json.dumps(sorted(doc.tags))
        pk = await self._pk(doc.owner_id, doc.id)

        if pk is not None:
            await self.conn.execute(
                """
                UPDATE documents
                SET source = ?, title = ?, content = ?, tags = ?, created_at = ?, updated_at = ?
                WHERE pk = ?
                """,
                (doc.source, doc.title, doc.content, tags_json,
                 doc.created_at.isoformat(), doc.updated_at.isoformat(), pk),
            )
            if self._has_vec:
                await self.conn.execute("DELETE FROM documents_vec WHERE doc_pk = ?", (pk,))
        else:
            cursor = await self.conn.execute(
                """
                INSERT INTO documents (id, owner_id, source, title, content, tags, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (doc.id, doc.owner_id, doc.source, doc.title, doc.content, tags_json,
                 doc.created_at.isoformat(), doc.updated_at.isoformat()),
            )
            pk = cursor.lastrowid

        # Zero vectors have no cosine direction; such documents are lexical-only
        if self._has_vec and not is_null_vector(doc.embedding):
            await self.conn.execute(
                "INSERT INTO documents_vec(doc_pk, owner_id, source, embedding) VALUES (?, ?, ?, ?)",
                (pk, doc.owner_id, doc.source, serialize_embedding(doc.embedding)),
            )

        await self.conn.commit()

    async def delete(self, owner_id: str, document_id: str) -> bool:
        pk = await self._pk(owner_id, document_id)
        if pk is None:
            return False

        if self._has_vec:
            await self.conn.execute("DELETE FROM documents_vec WHERE doc_pk = ?", (pk,))
        await self.conn.execute("DELETE FROM documents WHERE pk = ?", (pk,))
        await self.conn.commit()
        return True

    async def get(self, owner_id: str, document_id: str) -> IndexedDocument | None:
        rows = await self.conn.execute_fetchall(
            "SELECT * FROM documents WHERE owner_id = ? AND id = ?",
            (owner_id, document_id),
        )
        if not rows:
            return None

        row = rows[0]
        embedding = None
        if self._has_vec:
            vec_rows = await self.conn.execute_fetchall(
                "SELECT embedding FROM documents_vec WHERE doc_pk = ?", (row["pk"],)
            )
            if vec_rows:
                embedding = deserialize_embedding(vec_rows[0][0])
        return self._row_to_document(row, embedding)

    async def count(self, owner_id: str | None = None) -> int:
        if owner_id is None:
            rows = await self.conn.execute_fetchall("SELECT COUNT(*) FROM documents")
        else:
            rows = await self.conn.execute_fetchall(
                "SELECT COUNT(*) FROM documents WHERE owner_id = ?", (owner_id,)
            )
        return rows[0][0]

    async def clear(self, owner_id: str) -> int:
        if self._has_vec:
            await self.conn.execute(
                "DELETE FROM documents_vec WHERE doc_pk IN (SELECT pk FROM documents WHERE owner_id = ?)",
                (owner_id,),
            )
        cursor = await self.conn.execute("DELETE FROM documents WHERE owner_id = ?", (owner_id,))
        await self.conn.commit()
        return cursor.rowcount

    async def _spelling_variants(self, query: str) -> list[str]:
        """Indexed terms within typo distance of a query term.

        FTS5 only matches exact tokens and prefixes, so near-spellings are
        looked up in the index vocabulary and added to the MATCH expression.
        """
        variants: list[str] = []
        for term in dict.fromkeys(tokenize(query)):
            if term in _STOPWORDS or len(term) < FUZZY_MIN_PREFIX:
                continue
            low, high = similar_length_bounds(term)
            rows = await self.conn.execute_fetchall(
                "SELECT term FROM documents_fts_vocab WHERE length(term) BETWEEN ? AND ?",
                (low, high),
            )
            for row in rows:
                token = row[0]
                if token != term and token not in variants and term_matches(term, token):
                    variants.append(token)
        return variants

    async def search_lexical(
        self,
        owner_id: str,
        query: str,
        field_weights: dict[str, float],
        max_results: int,
        sources: set[str] | None = None,
    ) -> list[Hit]:
        if not self._has_fts:
            return []

        fts_query = build_fts_query(query, await self._spelling_variants(query))
        if fts_query is None:
            return []

        weights = ", ".join(str(float(field_weights.get(col, 0.0))) for col in FTS_COLUMNS)
        source_sql, source_args = _source_clause(sources, "d.source")
        rows = await self.conn.execute_fetchall(
            f"""
            SELECT d.*, bm25(documents_fts, {weights}) AS score
            FROM documents_fts
            JOIN documents d ON documents_fts.rowid = d.pk
            WHERE documents_fts MATCH ? AND d.owner_id = ?{source_sql}
            ORDER BY score, d.pk
            LIMIT ?
            """,
            [fts_query, owner_id, *source_args, max_results],
        )
        # bm25() is lower-is-better
        return [Hit(id=row["id"], score=-row["score"], source=self._row_to_document(row)) for row in rows]

    async def search_vector(
        self,
        owner_id: str,
        query_vector: np.ndarray,
        max_results: int,
        sources: set[str] | None = None,
    ) -> list[Hit]:
        if not self._has_vec or is_null_vector(query_vector):
            return []

        blob = serialize_embedding(query_vector)
        rows = []
        # source is a vec0 metadata column: filtered inside the KNN scan, one scan per source
        for source in sorted(sources) if sources else [None]:
            source_sql, source_args = ("", []) if source is None else (" AND source = ?", [source])
            rows.extend(await self.conn.execute_fetchall(
                f"""
                SELECT d.*, knn.distance
                FROM (
                    SELECT doc_pk, distance
                    FROM documents_vec
                    WHERE embedding MATCH ? AND k = ? AND owner_id = ?{source_sql}
                ) knn
                JOIN documents d ON d.pk = knn.doc_pk
                WHERE d.owner_id = ?
                """,
                [blob, max_results, owner_id, *source_args, owner_id],
            ))

        rows.sort(key=lambda row: (row["distance"], row["pk"]))
        # cosine distance = 1 - similarity
        return [
            Hit(id=row["id"], score=1 - row["distance"] + VECTOR_SCORE_SHIFT, source=self._row_to_document(row))
            for row in rows[:max_results]
        ]
