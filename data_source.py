"""Read-only data access for the careers tables.

Two interchangeable backends implement the same interface and return rows
as plain dicts, with embedded related rows nested under the related
table's name (the PostgREST response shape):

  - RestDataSource: Supabase / PostgREST through the supabase client
  - SqlDataSource: Flask-SQLAlchemy models (DATABASE_URL or local SQLite)

Queries are built with the typed Query builder and validated against the
model schema before anything is sent, so user input never names a table or
column directly.

Failures raise DataSourceError. An empty list always means "no rows".
"""

import logging
import os
from abc import ABC, abstractmethod

import httpx
from postgrest.exceptions import APIError
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import or_
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from supabase import create_client
from supabase.lib.client_options import ClientOptions

from models import TABLES, db, table_columns

logger = logging.getLogger(__name__)

FILTER_OPS = ('eq', 'gte', 'in')


class DataSourceError(Exception):
    """The backend could not be reached or rejected a query."""


class InvalidQueryError(ValueError):
    """A query names a table, column or relation outside the schema."""


def related_attribute(table: str, embed_table: str):
    """Name of the relationship on ``table``'s model that targets ``embed_table``."""
    model = TABLES.get(table)
    if model is None:
        return None
    for rel in sa_inspect(model).relationships:
        if rel.mapper.local_table.name == embed_table:
            return rel.key
    return None


# ---------------------------------------------------------------------------
# Query builder
# ---------------------------------------------------------------------------

class Query:
    """Fluent description of a single-table read.

        Query('job_major_mappings').eq('major_name', 'Business') \\
            .embed('occupation_data', 'title', 'description') \\
            .order('match_score').limit(20)

    ``embed`` may be called once per related table. ``hint`` names the
    foreign key PostgREST should follow when the table has several paths
    to the same related table.
    """

    def __init__(self, table: str):
        self.table = table
        self.selected = ()
        self.filters = []
        self.any_in = None
        self.order_by = None
        self.descending = True
        self.row_limit = None
        self.embedded = []

    def columns(self, *columns):
        self.selected = tuple(columns)
        return self

    def eq(self, column, value):
        self.filters.append((column, 'eq', value))
        return self

    def gte(self, column, value):
        self.filters.append((column, 'gte', value))
        return self

    def in_(self, column, values):
        self.filters.append((column, 'in', tuple(values)))
        return self

    def in_any(self, columns, values):
        """Match rows where any of ``columns`` is in ``values``."""
        self.any_in = (tuple(columns), tuple(values))
        return self

    def order(self, column, descending=True):
        self.order_by = column
        self.descending = descending
        return self

    def limit(self, n):
        """Cap the row count; None, zero or negative means no cap."""
        n = int(n) if n else 0
        self.row_limit = n if n > 0 else None
        return self

    def embed(self, table, *columns, hint=None):
        self.embedded.append((table, tuple(columns), hint))
        return self

    def validate(self):
        """Raise InvalidQueryError unless every name exists in the schema."""
        known = table_columns(self.table)
        if not known:
            raise InvalidQueryError(f'Unknown table: {self.table}')

        names = list(self.selected)
        names += [column for column, _, _ in self.filters]
        if self.any_in:
            names += list(self.any_in[0])
        if self.order_by:
            names.append(self.order_by)
        unknown = [n for n in names if n not in known]
        if unknown:
            raise InvalidQueryError(
                f'Unknown column(s) for {self.table}: {", ".join(unknown)}')

        for column, op, value in self.filters:
            if op not in FILTER_OPS:
                raise InvalidQueryError(f'Unsupported filter {op} on {column}')
            if op == 'in' and not value:
                raise InvalidQueryError(f'Empty IN list for {column}')
        if self.any_in and not self.any_in[1]:
            raise InvalidQueryError('Empty IN list')

        for embed_table, embed_columns, _ in self.embedded:
            if related_attribute(self.table, embed_table) is None:
                raise InvalidQueryError(f'{self.table} has no relation to {embed_table}')
            unknown = [c for c in embed_columns if c not in table_columns(embed_table)]
            if unknown:
                raise InvalidQueryError(
                    f'Unknown column(s) for {embed_table}: {", ".join(unknown)}')
        return self

    def __repr__(self):
        return (f'<Query {self.table} filters={self.filters} any_in={self.any_in} '
                f'order={self.order_by} limit={self.row_limit}>')


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------

class DataSource(ABC):
    """Abstract read-only access to the careers tables."""

    name: str = ''
    max_workers: int = 1

    @abstractmethod
    def select(self, query: Query) -> list:
        """Run the query and return a list of row dicts."""

    @abstractmethod
    def count(self, table: str) -> int:
        """Return the exact number of rows in a table."""

    def first(self, query: Query):
        """Return the first matching row, or None."""
        rows = self.select(query.limit(1))
        return rows[0] if rows else None

    def ping(self) -> bool:
        """True if the backend answers a trivial read of occupation_data."""
        try:
            self.select(Query('occupation_data').columns('onetsoc_code').limit(1))
        except DataSourceError as e:
            logger.error('Database connection failed: %s', e)
            return False
        logger.info('Database connection successful (%s)', self.name)
        return True


# ---------------------------------------------------------------------------
# Supabase / PostgREST
# ---------------------------------------------------------------------------

def _quote(value) -> str:
    text = str(value).replace('\\', '\\\\').replace('"', '\\"')
    return f'"{text}"'


def select_clause(query: Query) -> str:
    """PostgREST select string, embedded tables included."""
    select = ','.join(query.selected) or '*'
    for table, columns, hint in query.embedded:
        target = f'{table}!{hint}' if hint else table
        select += f',{target}({",".join(columns) or "*"})'
    return select


def any_in_filter(columns, values) -> str:
    """PostgREST ``or`` filter: any of ``columns`` in ``values``."""
    listed = ','.join(_quote(v) for v in values)
    return ','.join(f'{column}.in.({listed})' for column in columns)


class RestDataSource(DataSource):
    name = 'supabase'
    max_workers = 6

    def __init__(self, url: str, key: str, timeout: float = 15.0, client=None):
        self.url = url.rstrip('/')
        self.timeout = timeout
        self.client = client or create_client(
            self.url, key, options=ClientOptions(postgrest_client_timeout=timeout))

    def build_request(self, query: Query):
        """Translate a Query into a supabase request builder."""
        request = self.client.table(query.table).select(select_clause(query))
        for column, op, value in query.filters:
            if op == 'in':
                request = request.in_(column, list(value))
            elif op == 'gte':
                request = request.gte(column, value)
            else:
                request = request.eq(column, value)

        if query.any_in:
            request = request.or_(any_in_filter(*query.any_in))
        if query.order_by:
            request = request.order(query.order_by, desc=query.descending)
        if query.row_limit:
            request = request.limit(query.row_limit)
        return request

    def _execute(self, request, table: str):
        try:
            return request.execute()
        except APIError as e:
            logger.error('Supabase error on %s: %s', table, e.message)
            raise DataSourceError(f'Error reading {table}: {e.message}') from e
        except httpx.TimeoutException as e:
            logger.warning('Supabase timeout on %s', table)
            raise DataSourceError(f'Timed out reading {table}') from e
        except httpx.HTTPError as e:
            logger.error('Supabase request error on %s: %s', table, e)
            raise DataSourceError(f'Could not reach database: {e}') from e

    def select(self, query):
        query.validate()
        response = self._execute(self.build_request(query), query.table)
        if not isinstance(response.data, list):
            raise DataSourceError(f'Unexpected response shape from {query.table}')
        return response.data

    def count(self, table):
        if not table_columns(table):
            raise InvalidQueryError(f'Unknown table: {table}')
        request = self.client.table(table).select('*', count='exact', head=True)
        response = self._execute(request, table)
        if response.count is None:
            raise DataSourceError(f'No row count returned for {table}')
        return response.count


# ---------------------------------------------------------------------------
# SQL (Flask-SQLAlchemy)
# ---------------------------------------------------------------------------

class SqlDataSource(DataSource):
    name = 'sql'

    def __init__(self, app):
        self.app = app
        uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
        # One SQLite connection can't serve several threads at once
        self.max_workers = 1 if uri.startswith('sqlite') else 4

    def _statement(self, query, model):
        stmt = db.select(model)
        for column, op, value in query.filters:
            attr = getattr(model, column)
            if op == 'eq':
                stmt = stmt.where(attr == value)
            elif op == 'gte':
                stmt = stmt.where(attr >= value)
            else:
                stmt = stmt.where(attr.in_(value))

        if query.any_in:
            columns, values = query.any_in
            stmt = stmt.where(or_(*(getattr(model, c).in_(values) for c in columns)))

        for embed_table, _, _ in query.embedded:
            key = related_attribute(query.table, embed_table)
            stmt = stmt.options(selectinload(getattr(model, key)))

        if query.order_by:
            attr = getattr(model, query.order_by)
            stmt = stmt.order_by(attr.desc() if query.descending else attr.asc())
        if query.row_limit:
            stmt = stmt.limit(query.row_limit)
        return stmt

    def _row(self, obj, query, model) -> dict:
        columns = query.selected or model.__table__.columns.keys()
        row = {c: getattr(obj, c) for c in columns}
        for embed_table, embed_columns, _ in query.embedded:
            related = getattr(obj, related_attribute(query.table, embed_table))
            if related is None:
                row[embed_table] = None
            else:
                wanted = embed_columns or TABLES[embed_table].__table__.columns.keys()
                row[embed_table] = {c: getattr(related, c) for c in wanted}
        return row

    def select(self, query):
        query.validate()
        model = TABLES[query.table]
        try:
            with self.app.app_context():
                objects = db.session.execute(self._statement(query, model)).scalars().all()
                return [self._row(obj, query, model) for obj in objects]
        except SQLAlchemyError as e:
            logger.error('SQL error on %s: %s', query.table, e)
            raise DataSourceError(f'Error reading {query.table}: {e}') from e

    def count(self, table):
        model = TABLES.get(table)
        if model is None:
            raise InvalidQueryError(f'Unknown table: {table}')
        try:
            with self.app.app_context():
                stmt = db.select(db.func.count()).select_from(model)
                return db.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error('SQL count error on %s: %s', table, e)
            raise DataSourceError(f'Could not count {table}: {e}') from e


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def supabase_settings() -> tuple:
    """(url, server key) from the environment; new key names win over legacy ones."""
    url = os.environ.get('SUPABASE_URL', '').strip()
    key = (os.environ.get('SUPABASE_SECRET_KEY', '')
           or os.environ.get('SUPABASE_SERVICE_ROLE_KEY', '')).strip()
    return url, key


def build_data_source(app=None) -> DataSource:
    """Supabase when SUPABASE_URL and a server key are set, else the SQL database."""
    url, key = supabase_settings()
    if url and key:
        timeout = float(os.environ.get('SUPABASE_TIMEOUT', '15'))
        logger.info('Using Supabase data source at %s', url)
        return RestDataSource(url, key, timeout=timeout)

    if app is None:
        raise RuntimeError('Supabase is not configured and no Flask app was given '
                           'for the SQL data source')
    uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    logger.info('Supabase not configured, using SQL data source %s',
                make_url(uri).render_as_string(hide_password=True) if uri else '(unset)')
    return SqlDataSource(app)
