"""Schema helpers for relational providers.

The default configuration runs on protean's in-memory provider, in which case
both helpers are no-ops. When ``domain.toml`` points a provider at SQLite or
PostgreSQL, tables for every registered aggregate and entity are created
before the test session and dropped after it.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

_RELATIONAL_PROVIDERS = ("sqlite", "postgresql")


def _relational_providers(domain: Domain):
    for name, provider in domain.providers.items():
        if provider.conn_info["provider"] in _RELATIONAL_PROVIDERS:
            yield name, provider


def setup_db(domain: Domain) -> None:
    with domain.domain_context():
        for name, provider in _relational_providers(domain):
            records = list(domain.registry.aggregates.values()) + list(domain.registry.entities.values())
            for record in records:
                if record.cls.meta_.provider == name:
                    # Touching the DAO registers the table on the provider metadata
                    domain.repository_for(record.cls)._dao  # noqa: B018

            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.create_all(engine)


def drop_db(domain: Domain) -> None:
    with domain.domain_context():
        for _, provider in _relational_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
