"""Integration test fixtures: real filesystem I/O, HTTP mocked with respx."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from click.testing import CliRunner


@pytest.fixture(autouse=True)
def _isolate(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith("TRADA_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Config with all three tools pointed at test hosts."""
    path = tmp_path / "trada.yml"
    path.write_text(
        f"""
logging:
  level: debug
  file: {tmp_path / "log" / "trada.log"}
cryptowatch:
  base_url: https://api.cryptowat.test
  exchange: kraken
  output_dir: {tmp_path / "crypto"}
  max_procs: 2
iex:
  base_url: https://iex.test/stable
  token: pk_test
  output_dir: {tmp_path / "equities"}
  watchlists: [{tmp_path / "lists" / "etf.csv"}]
wiki:
  api_url: https://wiki.test/w/api.php
  output_dir: {tmp_path / "index"}
  resources:
    - name: SPX
      page_name: List of S&P 500 companies
      section: 1
      output_file: spx.csv
    - name: DJIA
      page_name: Dow Jones Industrial Average
      section: 1
      output_file: djia.csv
"""
    )
    lists = tmp_path / "lists"
    lists.mkdir()
    (lists / "etf.csv").write_text(
        "sym;name;security\nSPY;SPDR S&P 500 ETF;equity\nQQQ;Invesco QQQ;equity\n"
    )
    return path
