"""pytest plugin driving DataCreation through the test lifecycle.

Registered through the ``pytest11`` entry point. Projects provide the
session their code under test uses by overriding ``scenariodata_session``
and, optionally, the creator modules by overriding ``scenariodata_modules``:

    @pytest.fixture
    def scenariodata_session(db_session):
        return db_session

    def test_person_page(data_creation, client):
        ivan = data_creation.get_or_create("person", "Ivan")
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from scenariodata.config import DataCreationConfig, load_config
from scenariodata.creators import CreatorRegistry
from scenariodata.errors import ConfigurationError
from scenariodata.factories import configure_faker
from scenariodata.module import DataCreation

logger = logging.getLogger(__name__)


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("scenariodata", "scenario test data")
    group.addoption(
        "--scenariodata-config",
        action="store",
        dest="scenariodata_config",
        default=None,
        help="Path to the scenariodata YAML configuration file",
    )
    parser.addini(
        "scenariodata_config",
        help="Path to the scenariodata YAML configuration file",
        default=None,
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "scenariodata: test creates and verifies scenario data in the database"
    )


@pytest.fixture(scope="session")
def scenariodata_config(pytestconfig: pytest.Config) -> DataCreationConfig:
    path = pytestconfig.getoption("scenariodata_config") or pytestconfig.getini(
        "scenariodata_config"
    )
    config = load_config(path or None)
    configure_faker(config.faker_locale, config.faker_seed)
    return config


@pytest.fixture(scope="session")
def scenariodata_engine(scenariodata_config: DataCreationConfig) -> Iterator[Engine]:
    if not scenariodata_config.db_url:
        raise ConfigurationError(
            message="No database configured for scenario data",
        )
    engine = create_engine(scenariodata_config.db_url, echo=scenariodata_config.echo_sql)
    logger.info(f"Connected scenario data engine to {engine.url!r}")
    yield engine
    engine.dispose()


@pytest.fixture
def scenariodata_session(scenariodata_engine: Engine) -> Iterator[Session]:
    """Session shared by data creation and the code under test.

    Override this fixture to hand in the session of the application.
    """
    with Session(scenariodata_engine) as session:
        yield session


@pytest.fixture
def scenariodata_modules() -> list[Any]:
    """Data creator modules; every registered creator class by default."""
    return CreatorRegistry.instantiate_all()


@pytest.fixture
def data_creation(
    scenariodata_session: Session,
    scenariodata_modules: list[Any],
    scenariodata_config: DataCreationConfig,
) -> Iterator[DataCreation]:
    helper = DataCreation(scenariodata_session, config=scenariodata_config)
    helper.initialize(scenariodata_modules)
    helper.before_test()
    try:
        yield helper
    finally:
        helper.after_test()
