from protean.domain import Domain
from sqlalchemy import create_engine

from ordering.order.numbering import counters, metadata


def _rdbms_engines(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in ("sqlite", "postgresql"):
            yield provider, create_engine(provider.conn_info["database_uri"])


def setup_db(domain: Domain):
    """Create the aggregate tables and the order number counter table."""
    with domain.domain_context():
        for provider, engine in _rdbms_engines(domain):
            # Touching ``_dao`` registers each aggregate's model with the provider metadata
            for _, aggregate_record in domain.registry.aggregates.items():
                if aggregate_record.cls.meta_.provider == provider.name:
                    domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

            for _, entity_record in domain.registry.entities.items():
                if entity_record.cls.meta_.provider == provider.name:
                    domain.repository_for(entity_record.cls)._dao  # noqa: B018

            provider._metadata.create_all(engine)
            metadata.create_all(engine, tables=[counters])


def drop_db(domain: Domain):
    """Drop every table created by ``setup_db``."""
    with domain.domain_context():
        for provider, engine in _rdbms_engines(domain):
            provider._metadata.drop_all(engine)
            metadata.drop_all(engine, tables=[counters])
