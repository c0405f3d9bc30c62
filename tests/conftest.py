"""Root conftest for the schoolcert test suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` and the shared test helpers importable without installing
# ---------------------------------------------------------------------------
_HERE = Path(__file__).resolve().parent
for _path in (str(_HERE.parent / "src"), str(_HERE)):
    if _path not in sys.path:
        sys.path.insert(0, _path)

from fake_chain import TEST_CONTRACT_ADDRESS, TEST_PRIVATE_KEY  # noqa: E402

# ---------------------------------------------------------------------------
# Minimal config data shared by multiple test modules
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_config_data() -> dict:
    """Return a dict containing the minimum required config fields."""
    return {
        "server": {"external_url": "https://certs.example.edu"},
        "database": {"database": "schoolcert_test", "user": "testuser"},
    }


@pytest.fixture()
def ledger_config_data(minimal_config_data: dict) -> dict:
    """Minimal config with a fully configured ledger and storage."""
    data = dict(minimal_config_data)
    data["ledger"] = {
        "network": "localhost",
        "private_key": TEST_PRIVATE_KEY,
        "contract_address": TEST_CONTRACT_ADDRESS,
    }
    data["storage"] = {"api_key": "key", "api_secret": "secret"}
    return data


@pytest.fixture()
def tmp_config_file(tmp_path: Path, minimal_config_data: dict) -> Path:
    """Write *minimal_config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.safe_dump(minimal_config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


# ---------------------------------------------------------------------------
# Config singleton cleanup -- autouse so every test gets a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the SchoolcertConfig singleton before and after every test."""
    from schoolcert.config.schoolcert_config import SchoolcertConfig

    SchoolcertConfig.reset()
    yield
    SchoolcertConfig.reset()


# ---------------------------------------------------------------------------
# Logger state -- configure_logging() mutates process-global loggers
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def restore_loggers():
    """Undo handler/propagation changes made by configure_logging()."""
    import logging

    names = ("schoolcert", "schoolcert.access", "schoolcert.audit")
    saved = {}
    for name in names:
        lg = logging.getLogger(name)
        saved[name] = (list(lg.handlers), lg.level, lg.propagate, lg.disabled)
    yield
    for name, (handlers, level, propagate, disabled) in saved.items():
        lg = logging.getLogger(name)
        for h in lg.handlers:
            if h not in handlers:
                h.close()
        lg.handlers[:] = handlers
        lg.setLevel(level)
        lg.propagate = propagate
        lg.disabled = disabled
