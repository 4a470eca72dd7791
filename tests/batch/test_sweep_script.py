"""End-to-end test of scripts/sweep_expired_bids.py against a file-backed SQLite database."""

import importlib.util
import sys
from datetime import date
from pathlib import Path
from uuid import uuid4

import pytest

from bid_config import CONFIG_ENV_VAR, DATABASE_URL_ENV_VAR
from bid_kernel.db.engine import create_tables, init_engine_from_url, reset_engine, session_scope
from bid_kernel.domain.clock import DeterministicClock
from bid_kernel.domain.dtos import BidStatus
from bid_kernel.selectors.bid_selector import BidSelector
from bid_kernel.services.bid_service import BidService

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "sweep_expired_bids.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("sweep_expired_bids", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.delenv(DATABASE_URL_ENV_VAR, raising=False)
    url = f"sqlite:///{tmp_path / 'bids.db'}"
    init_engine_from_url(url)
    create_tables()
    yield url
    reset_engine()


@pytest.fixture
def stale_bid_id(database_url):
    with session_scope() as session:
        bid = BidService(session, clock=DeterministicClock()).create_bid(
            uuid4(), uuid4(), "Boiler retrofit", "general", {"end_date": date(2025, 6, 20)}
        )
    return bid.id


def _status(bid_id):
    with session_scope() as session:
        return BidSelector(session).get_bid(bid_id).status


def test_sweep_commits(database_url, stale_bid_id, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["sweep_expired_bids.py", "--db-url", database_url])

    assert _load_script().main() == 0

    assert "Expired 1 bid(s), 0 error(s)" in capsys.readouterr().out
    assert _status(stale_bid_id) == BidStatus.EXPIRED


def test_dry_run_rolls_back(database_url, stale_bid_id, monkeypatch, capsys):
    monkeypatch.setattr(
        sys, "argv", ["sweep_expired_bids.py", "--db-url", database_url, "--dry-run"]
    )

    assert _load_script().main() == 0

    assert "dry run, rolled back" in capsys.readouterr().out
    assert _status(stale_bid_id) == BidStatus.DRAFT
