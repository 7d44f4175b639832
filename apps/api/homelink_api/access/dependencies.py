"""FastAPI dependencies wiring the resolver to the request's session."""

from __future__ import annotations

from fastapi import Depends
from starlette.requests import HTTPConnection
from sqlalchemy.orm import Session

from homelink_api.access.resolver import AccessResolver
from homelink_api.db.capabilities import SchemaCapabilities
from homelink_api.db.database import get_db


def get_schema_capabilities(
    connection: HTTPConnection,
    db: Session = Depends(get_db),
) -> SchemaCapabilities:
    capabilities = getattr(connection.app.state, "schema_capabilities", None)
    if capabilities is not None:
        return capabilities
    # Lifespan has not run (e.g. bare TestClient); probe this session's bind.
    return SchemaCapabilities.probe(db.get_bind())


def get_access_resolver(
    db: Session = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_schema_capabilities),
) -> AccessResolver:
    return AccessResolver(db, capabilities)
