"""Schema management for SQL-backed providers of the ordering domain."""

from protean.domain import Domain
from sqlalchemy import create_engine

SQL_PROVIDERS = ("sqlite", "postgresql")


def _sql_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in SQL_PROVIDERS:
            yield provider


def setup_db(domain: Domain) -> int:
    """Create tables for every aggregate stored in a SQL provider.

    Returns the number of providers touched; the memory provider needs no schema.
    """
    touched = 0
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])

            # Touching the DAO registers the aggregate's model with the provider metadata
            for _, record in domain.registry.aggregates.items():
                if record.cls.meta_.provider == provider.name:
                    domain.repository_for(record.cls)._dao  # noqa: B018

            provider._metadata.create_all(engine)
            touched += 1
    return touched


def drop_db(domain: Domain) -> int:
    """Drop every table created by setup_db."""
    touched = 0
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
            touched += 1
    return touched
