from __future__ import annotations

import json

import pytest

from statement_import.config import (
    DEFAULT_RULES,
    CategoryRule,
    IngestConfig,
    load_rules_file,
)


def test_defaults():
    cfg = IngestConfig()
    assert cfg.dayfirst is True
    assert cfg.bad_date_policy == "today"
    assert cfg.rules == DEFAULT_RULES
    assert dict(cfg.learned_rules) == {}


def test_from_env(tmp_path):
    rules_file = tmp_path / "rules.json"
    rules_file.write_text(json.dumps({"Food": ["tacos"], "Transport": ["metro"]}), "utf-8")
    env = {
        "SI_CATEGORY_RULES_FILE": str(rules_file),
        "SI_DATE_DAYFIRST": "0",
        "SI_BAD_DATE_POLICY": "skip",
    }

    cfg = IngestConfig.from_env(env)

    assert cfg.dayfirst is False
    assert cfg.bad_date_policy == "skip"
    assert cfg.rules == (CategoryRule("Food", ("tacos",)), CategoryRule("Transport", ("metro",)))


def test_from_env_reads_process_environment(monkeypatch):
    monkeypatch.setenv("SI_BAD_DATE_POLICY", "SKIP")
    assert IngestConfig.from_env().bad_date_policy == "skip"


def test_invalid_policy_rejected():
    with pytest.raises(ValueError):
        IngestConfig.from_env({"SI_BAD_DATE_POLICY": "guess"})


def test_rules_must_use_known_labels():
    with pytest.raises(ValueError, match="Crypto"):
        IngestConfig(rules=(CategoryRule("Crypto", ("btc",)),))


def test_rules_file_errors_name_the_file(tmp_path):
    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{not json", "utf-8")
    with pytest.raises(ValueError, match="bad.json"):
        load_rules_file(bad_json)

    empty_kw = tmp_path / "empty.json"
    empty_kw.write_text(json.dumps({"Food": ["  "]}), "utf-8")
    with pytest.raises(ValueError, match="empty.json"):
        load_rules_file(empty_kw)


def test_unreadable_rules_file_is_a_value_error(tmp_path):
    missing = tmp_path / "nope.json"
    with pytest.raises(ValueError, match="cannot read category rules file .*nope.json"):
        load_rules_file(missing)
    with pytest.raises(ValueError, match="nope.json"):
        IngestConfig.from_env({"SI_CATEGORY_RULES_FILE": str(missing)})


def test_skip_blank_columns_flag():
    assert IngestConfig.from_env({}).skip_blank_matches is False
    assert IngestConfig.from_env({"SI_SKIP_BLANK_COLUMNS": "1"}).skip_blank_matches is True


def test_learned_rules_are_normalized_and_merged():
    cfg = IngestConfig(learned_rules={" Uber  Trip ": "Transport"})
    merged = cfg.with_learned_rules({"uber trip": "Household", "Cafe X": "Food"})
    assert dict(cfg.learned_rules) == {"uber trip": "Transport"}
    assert dict(merged.learned_rules) == {"uber trip": "Household", "cafe x": "Food"}


def test_learned_rules_must_use_known_labels():
    with pytest.raises(ValueError):
        IngestConfig(learned_rules={"x": "Nope"})
