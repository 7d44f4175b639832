"""Startup probe for optional relations and missing-relation diagnostics.

Membership, invite and access-permission tables were added to the schema
after the core tables, so a partially migrated database may lack them. The
probe runs once at startup and the resulting flags are consulted by the
access resolver and by write handlers instead of rediscovering the schema
through failed queries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re

from sqlalchemy import Table, inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.schema import CreateTable

from homelink_api.db.database import Base
from homelink_api.errors import SchemaMissingError
from homelink_api.logging_service import get_logger, log_with_context


logger = get_logger(__name__)

HOME_MEMBERS = "home_members"
HOME_INVITES = "home_invites"
ACCESS_PERMISSIONS = "access_permissions"
OPTIONAL_RELATIONS = (HOME_MEMBERS, HOME_INVITES, ACCESS_PERMISSIONS)

_MISSING_RELATION_PATTERNS = (
    # SQLite
    re.compile(r"no such table:\s*(?:\w+\.)?[\"`]?(?P<name>\w+)", re.IGNORECASE),
    # PostgreSQL
    re.compile(r"relation \"(?:\w+\.)?(?P<name>\w+)\" does not exist", re.IGNORECASE),
    # MySQL / MariaDB
    re.compile(r"table '(?:\w+\.)?(?P<name>\w+)' doesn't exist", re.IGNORECASE),
)


@dataclass(frozen=True)
class SchemaCapabilities:
    """Immutable set of optional relations present in the database."""

    present: frozenset[str] = field(default_factory=lambda: frozenset(OPTIONAL_RELATIONS))

    @classmethod
    def full(cls) -> "SchemaCapabilities":
        return cls(frozenset(OPTIONAL_RELATIONS))

    @classmethod
    def probe(cls, bind: Engine | Connection) -> "SchemaCapabilities":
        """Inspect the database once and record which optional relations exist."""
        table_names = set(inspect(bind).get_table_names())
        capabilities = cls(frozenset(name for name in OPTIONAL_RELATIONS if name in table_names))
        for relation in capabilities.missing:
            log_with_context(
                logger,
                "WARNING",
                f"Optional relation '{relation}' is missing; access checks will degrade",
                relation=relation,
            )
        return capabilities

    @property
    def has_home_members(self) -> bool:
        return HOME_MEMBERS in self.present

    @property
    def has_home_invites(self) -> bool:
        return HOME_INVITES in self.present

    @property
    def has_access_permissions(self) -> bool:
        return ACCESS_PERMISSIONS in self.present

    @property
    def missing(self) -> list[str]:
        return [name for name in OPTIONAL_RELATIONS if name not in self.present]

    def readable(self, relation: str, home_id: str | None = None) -> bool:
        """True when reads may query `relation`; otherwise warn so callers return nothing."""
        if relation in self.present:
            return True
        log_with_context(
            logger,
            "WARNING",
            f"Relation '{relation}' unavailable; returning an empty listing",
            relation=relation,
            home_id=home_id,
        )
        return False

    def require(self, relation: str, bind: Engine | Connection | None = None) -> None:
        """Raise SchemaMissingError before a write into an absent relation."""
        if relation in self.present:
            return
        raise SchemaMissingError(relation, suggested_create_statement(relation, bind))


def missing_relation_name(exc: BaseException) -> str | None:
    """Return the relation named by a "table does not exist" store error."""
    if not isinstance(exc, DBAPIError):
        return None
    message = str(exc.orig) if exc.orig is not None else str(exc)
    for pattern in _MISSING_RELATION_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group("name")
    return None


def suggested_create_statement(
    relation: str,
    bind: Engine | Connection | None = None,
) -> str | None:
    """Render CREATE TABLE for a known relation in the bound dialect."""
    # Import models so metadata is populated.
    from homelink_api import models  # noqa: F401

    table: Table | None = Base.metadata.tables.get(relation)
    if table is None:
        return None
    statement = CreateTable(table)
    if bind is not None:
        return str(statement.compile(dialect=bind.dialect)).strip()
    return str(statement.compile()).strip()
