from datetime import datetime
from pathlib import Path
import json
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest
import yaml
from pydantic import ValidationError
from typer.testing import CliRunner

from finassist.cli import app
from finassist.config.runtime_config import load_runtime_config, save_runtime_config
from finassist.nlp.parser import parse_user_query


def test_defaults_without_files(tmp_path):
    cfg = load_runtime_config(str(tmp_path))
    assert cfg.query.result_limit == 500
    assert cfg.query.magnitude_scope == "question"
    assert "gaji" in cfg.keywords.income_words


def test_runtime_overrides_defaults(tmp_path):
    conf = tmp_path / "config"
    conf.mkdir()
    (conf / "service_defaults.yaml").write_text(
        yaml.safe_dump({"query": {"result_limit": 100, "list_size": 5}}), encoding="utf-8"
    )
    (conf / "runtime_config.yaml").write_text(
        yaml.safe_dump({"query": {"result_limit": 50}, "keywords": {"periods": {"yesterday": ["kmrn"]}}}),
        encoding="utf-8",
    )
    cfg = load_runtime_config(str(tmp_path))
    assert cfg.query.result_limit == 50
    assert cfg.query.list_size == 5
    assert cfg.keywords.periods["yesterday"] == ["kmrn"]

    f = parse_user_query("jajan kmrn", datetime(2024, 3, 15), phrases=cfg.keywords)
    assert f.date_start.isoformat() == "2024-03-14"


def test_invalid_runtime_config(tmp_path):
    conf = tmp_path / "config"
    conf.mkdir()
    (conf / "runtime_config.yaml").write_text("query:\n  magnitude_scope: nearby\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_runtime_config(str(tmp_path))


def test_save_round_trip(tmp_path):
    cfg = load_runtime_config(str(tmp_path))
    cfg.query.magnitude_scope = "adjacent"
    save_runtime_config(cfg, str(tmp_path))
    assert load_runtime_config(str(tmp_path)).query.magnitude_scope == "adjacent"


def test_cli_parse(tmp_path, monkeypatch):
    monkeypatch.setattr("finassist.cli.load_runtime_config", lambda: load_runtime_config(str(tmp_path)))
    result = CliRunner().invoke(app, ["parse", "-q", "pengeluaran bulan lalu di atas 1 juta", "--today", "2024-01-10"])
    assert result.exit_code == 0
    payload, label = result.output.rsplit("}\n", 1)
    data = json.loads(payload + "}")
    assert data == {
        "type": "expense",
        "amount_min": 1000000.0,
        "date_start": "2023-12-01",
        "date_end": "2023-12-31",
    }
    assert label.strip() == "expense transactions from 2023-12-01 to 2023-12-31, amount >= 1000000"


def test_cli_parse_rejects_bad_date():
    result = CliRunner().invoke(app, ["parse", "-q", "halo", "--today", "kemarin"])
    assert result.exit_code == 2
