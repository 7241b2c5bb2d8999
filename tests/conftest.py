"""Pytest fixtures for scenariodata tests."""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from scenariodata import DataCreation, DataCreationConfig
from scenariodata.factories import configure_faker
from tests.models import Address, Base, City, CityCreator, PersonCreator


@pytest.fixture(autouse=True)
def seeded_faker():
    configure_faker(seed=1234)


@pytest.fixture
def engine() -> Engine:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Session:
    with Session(engine) as session:
        yield session


@pytest.fixture(scope="session")
def scenariodata_config() -> DataCreationConfig:
    return DataCreationConfig(_env_file=None)


@pytest.fixture
def scenariodata_session(session: Session) -> Session:
    return session


@pytest.fixture
def scenariodata_modules() -> list[Any]:
    return [PersonCreator(), CityCreator()]


@pytest.fixture
def helper(session: Session, scenariodata_config: DataCreationConfig) -> DataCreation:
    """DataCreation driven by hand, outside the plugin's lifecycle."""
    data_creation = DataCreation(
        session, modules=[PersonCreator(), CityCreator()], config=scenariodata_config
    )
    data_creation.before_test()
    yield data_creation
    data_creation.after_test()


@pytest.fixture
def moscow(session: Session) -> City:
    city = City(name="Moscow")
    session.add(city)
    session.flush()
    return city


@pytest.fixture
def address(session: Session, moscow: City) -> Address:
    address = Address(street="Tverskaya", city=moscow)
    session.add(address)
    session.flush()
    return address
