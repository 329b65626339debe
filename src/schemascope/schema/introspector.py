"""PostgreSQL schema introspection via information_schema and pg_catalog.

Queries a live database and builds a ``SchemaSnapshot``:
- Tables, columns, data types, nullability, defaults
- Foreign keys with delete/update rules
- Indexes (name, columns, uniqueness) and primary keys
- Approximate row counts and total relation size

Also collects per-table activity statistics (``collect_stats``).

Uses psycopg (v3) async connections.
"""

import logging

import psycopg

from schemascope.schema.models import (
    Column,
    ForeignKey,
    Index,
    SchemaSnapshot,
    Table,
    TableStats,
)
from schemascope.schema.parser import normalize_tables

logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Introspects a PostgreSQL database schema.

    Usage:
        async with SchemaIntrospector(database_url) as introspector:
            schema = await introspector.introspect("public")
            stats = await introspector.collect_stats("public")
    """

    EXCLUDED_TABLES_DEFAULT: frozenset[str] = frozenset(
        {
            "schema_migrations",
            "pg_stat_statements",
            "spatial_ref_sys",
        }
    )

    def __init__(
        self,
        database_url: str,
        excluded_tables: set[str] | None = None,
        connect_timeout: int = 10,
    ):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL.
            excluded_tables: Table names to skip.  ``None`` uses
                ``EXCLUDED_TABLES_DEFAULT``; an empty set skips nothing.
            connect_timeout: Connection timeout in seconds.
        """
        self._database_url = database_url
        self._excluded_tables = (
            set(self.EXCLUDED_TABLES_DEFAULT)
            if excluded_tables is None
            else set(excluded_tables)
        )
        self._connect_timeout = connect_timeout
        self._conn: psycopg.AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        self._conn = await psycopg.AsyncConnection.connect(
            self._database_url,
            connect_timeout=self._connect_timeout,
            autocommit=True,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_connection(self) -> psycopg.AsyncConnection:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        return self._conn

    async def _fetch_all(self, query: str, params: tuple) -> list[tuple]:
        conn = self._require_connection()
        async with conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchall()

    async def test_connection(self) -> bool:
        """Run ``SELECT 1``.

        Raises:
            ConnectionError: If the query fails.
        """
        conn = self._require_connection()
        try:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                await cur.fetchone()
        except psycopg.Error as e:
            raise ConnectionError(f"Connection test failed: {e}") from e
        return True

    async def introspect(self, schema_name: str = "public") -> SchemaSnapshot:
        """Introspect every base table in *schema_name*.

        Returns:
            ``SchemaSnapshot`` with columns, foreign keys, indexes, primary
            keys, and size estimates for each table.
        """
        self._require_connection()

        tables: list[Table] = []
        for table_name in await self._get_tables(schema_name):
            if table_name in self._excluded_tables:
                continue

            table = Table(name=table_name, schema_name=schema_name)
            table.columns = await self._get_columns(schema_name, table_name)
            table.foreign_keys = await self._get_foreign_keys(schema_name, table_name)
            table.indexes = await self._get_indexes(schema_name, table_name)
            table.primary_keys = await self._get_primary_keys(schema_name, table_name)
            table.row_count, table.size_bytes = await self._get_table_size(
                schema_name, table_name
            )
            tables.append(table)

        return SchemaSnapshot(tables=normalize_tables(tables), schemas=[schema_name])

    async def _get_tables(self, schema_name: str) -> list[str]:
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        return [row[0] for row in await self._fetch_all(query, (schema_name,))]

    async def _get_columns(self, schema_name: str, table_name: str) -> list[Column]:
        query = """
            SELECT column_name, data_type, is_nullable, column_default
            FROM information_schema.columns
            WHERE table_schema = %s
              AND table_name = %s
            ORDER BY ordinal_position
        """
        return [
            Column(
                name=col_name,
                type=data_type,
                nullable=(is_nullable == "YES"),
                default=default,
            )
            for col_name, data_type, is_nullable, default in await self._fetch_all(
                query, (schema_name, table_name)
            )
        ]

    async def _get_foreign_keys(
        self, schema_name: str, table_name: str
    ) -> list[ForeignKey]:
        query = """
            SELECT
                kcu.column_name,
                ccu.table_name AS foreign_table_name,
                ccu.column_name AS foreign_column_name,
                rc.delete_rule,
                rc.update_rule
            FROM information_schema.table_constraints AS tc
            JOIN information_schema.key_column_usage AS kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
            JOIN information_schema.constraint_column_usage AS ccu
                ON ccu.constraint_name = tc.constraint_name
                AND ccu.table_schema = tc.table_schema
            JOIN information_schema.referential_constraints AS rc
                ON rc.constraint_name = tc.constraint_name
            WHERE tc.constraint_type = 'FOREIGN KEY'
              AND tc.table_schema = %s
              AND tc.table_name = %s
        """
        return [
            ForeignKey(
                column=col_name,
                references=f"{ref_table}.{ref_col}",
                on_delete=delete_rule,
                on_update=update_rule,
            )
            for col_name, ref_table, ref_col, delete_rule, update_rule in await self._fetch_all(
                query, (schema_name, table_name)
            )
        ]

    async def _get_indexes(self, schema_name: str, table_name: str) -> list[Index]:
        query = """
            SELECT
                i.relname AS index_name,
                array_agg(a.attname ORDER BY x.ordinality) AS columns,
                ix.indisunique AS is_unique
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS x(attnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = x.attnum
            WHERE n.nspname = %s
              AND t.relname = %s
            GROUP BY i.relname, ix.indisunique
            ORDER BY i.relname
        """
        return [
            Index(name=name, columns=list(columns), unique=is_unique)
            for name, columns, is_unique in await self._fetch_all(
                query, (schema_name, table_name)
            )
        ]

    async def _get_primary_keys(self, schema_name: str, table_name: str) -> list[str]:
        query = """
            SELECT a.attname
            FROM pg_index i
            JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
            JOIN pg_class t ON t.oid = i.indrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            WHERE i.indisprimary
              AND n.nspname = %s
              AND t.relname = %s
        """
        return [row[0] for row in await self._fetch_all(query, (schema_name, table_name))]

    async def _get_table_size(
        self, schema_name: str, table_name: str
    ) -> tuple[int, int]:
        """Approximate row count and total size; (0, 0) if unavailable."""
        query = """
            SELECT
                (SELECT reltuples::bigint FROM pg_class WHERE oid = %s::regclass),
                pg_total_relation_size(%s::regclass)
        """
        full_name = f"{schema_name}.{table_name}"
        try:
            rows = await self._fetch_all(query, (full_name, full_name))
        except psycopg.Error as e:
            logger.warning(f"Could not get size for {full_name}: {e}")
            return 0, 0

        if not rows:
            return 0, 0
        row_count, size_bytes = rows[0]
        return max(int(row_count or 0), 0), int(size_bytes or 0)

    async def collect_stats(self, schema_name: str = "public") -> list[TableStats]:
        """Collect activity and size statistics for every user table."""
        query = """
            SELECT
                relname,
                n_live_tup,
                seq_scan,
                idx_scan,
                n_tup_ins,
                n_tup_upd,
                n_tup_del
            FROM pg_stat_user_tables
            WHERE schemaname = %s
            ORDER BY relname
        """
        stats: list[TableStats] = []
        for row in await self._fetch_all(query, (schema_name,)):
            table_name, live, seq_scans, idx_scans, inserted, updated, deleted = row
            table_size, index_size = await self._get_relation_sizes(schema_name, table_name)
            stats.append(
                TableStats(
                    table_name=table_name,
                    row_count=int(live or 0),
                    size_bytes=table_size,
                    index_size_bytes=index_size,
                    sequential_scans=int(seq_scans or 0),
                    index_scans=int(idx_scans or 0),
                    tuples_inserted=int(inserted or 0),
                    tuples_updated=int(updated or 0),
                    tuples_deleted=int(deleted or 0),
                )
            )
        return stats

    async def _get_relation_sizes(
        self, schema_name: str, table_name: str
    ) -> tuple[int, int]:
        query = """
            SELECT pg_table_size(%s::regclass), pg_indexes_size(%s::regclass)
        """
        full_name = f"{schema_name}.{table_name}"
        try:
            rows = await self._fetch_all(query, (full_name, full_name))
        except psycopg.Error as e:
            logger.warning(f"Could not get size for {full_name}: {e}")
            return 0, 0

        if not rows:
            return 0, 0
        table_size, index_size = rows[0]
        return int(table_size or 0), int(index_size or 0)
