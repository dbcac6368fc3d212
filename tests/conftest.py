"""Pytest fixtures for testing"""

from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from roundup_ledger.domain.models import MicroSavingConfig, Owner
from roundup_ledger.infrastructure.database.models import Base
from roundup_ledger.infrastructure.database.repositories import MicroSavingConfigRepository, OwnerRepository
from roundup_ledger.infrastructure.database.session import build_session_factory
from roundup_ledger.main import LedgerServices, build_services


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    """File-backed SQLite so several sessions can see the same data"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create test database session"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def services(db: Session) -> LedgerServices:
    return build_services(db)


@pytest.fixture
def owner(db: Session) -> Owner:
    """Bare owner without account or configuration"""
    owner = OwnerRepository(db).save(Owner(username="ada", email="ada@example.com"))
    db.commit()
    return owner


@pytest.fixture
def active_config(db: Session, owner: Owner) -> MicroSavingConfig:
    config = MicroSavingConfigRepository(db).save(MicroSavingConfig(owner_id=owner.id))
    db.commit()
    return config
