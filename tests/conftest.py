from __future__ import annotations

from pathlib import Path

import pytest

from selfheal.config.loader import ConfigLoader
from selfheal.config.schema import LedgerConfig
from selfheal.core.resolver import AdaptiveResolver
from selfheal.logging.ledger import HealingLedger


@pytest.fixture()
def suite_config(tmp_path):
    config_path = Path(__file__).resolve().parents[1] / "config" / "test_suite.json"
    config = ConfigLoader.load(config_path)
    config.ledger.directory = tmp_path / "selectors"
    return config


@pytest.fixture()
def ledger(tmp_path):
    return HealingLedger(LedgerConfig(directory=tmp_path / "selectors"))


@pytest.fixture()
def resolver(ledger):
    return AdaptiveResolver(ledger)
