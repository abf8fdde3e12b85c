import logging

import pytest

import cli
from app_service import PriceService
from conftest import CET, MemoryStore, StubFetcher
from errors import FetchStatusError


@pytest.fixture
def no_config(monkeypatch, tmp_path):
    for name in ("TPIR_CONFIG", "TPIR_AREA", "TPIR_MAX_PRICE", "TPIR_CACHE_DIR", "TPIR_API_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))


@pytest.fixture
def fake_service(monkeypatch, clock, sample_payload):
    created = {}

    def factory(container, logger=None):
        service = PriceService(
            MemoryStore(),
            created.get("fetcher") or StubFetcher(payload=sample_payload),
            tzinfo=CET,
            logger=logging.getLogger("test.cli"),
            clock=clock,
        )
        created["service"] = service
        created["container"] = container
        return service

    monkeypatch.setattr(PriceService, "from_container", factory)
    return created


def test_exit_zero_when_price_is_at_or_below_threshold(no_config, fake_service):
    assert cli.main(["SE3", "3"]) == cli.EXIT_PRICE_IS_RIGHT
    assert cli.main(["SE3", "2.86587"]) == cli.EXIT_PRICE_IS_RIGHT


def test_exit_one_when_price_is_above_threshold(no_config, fake_service):
    assert cli.main(["SE3", "1.5"]) == cli.EXIT_PRICE_IS_WRONG


def test_invalid_area_code_is_an_error(no_config, fake_service, capsys):
    assert cli.main(["SE7", "1.5"]) == cli.EXIT_ERROR
    assert "area code has invalid value SE7" in capsys.readouterr().err


def test_invalid_price_is_an_error(no_config, fake_service, capsys):
    assert cli.main(["SE3", "cheap"]) == cli.EXIT_ERROR
    assert "cheap is not a valid price" in capsys.readouterr().err


def test_missing_arguments_is_an_error(no_config, fake_service, capsys):
    assert cli.main([]) == cli.EXIT_ERROR
    assert "area code and price are required" in capsys.readouterr().err


def test_arguments_fall_back_to_configuration(no_config, fake_service, monkeypatch):
    monkeypatch.setenv("TPIR_AREA", "SE3")
    monkeypatch.setenv("TPIR_MAX_PRICE", "2.0")

    assert cli.main([]) == cli.EXIT_PRICE_IS_WRONG
    assert fake_service["container"].settings.area_code == "SE3"


def test_fetch_failure_is_an_error(no_config, fake_service, capsys):
    fake_service["fetcher"] = StubFetcher(error=FetchStatusError("responded with status code 500", "https://prices.test", 500))

    assert cli.main(["SE3", "1.5"]) == cli.EXIT_ERROR
    assert "error: responded with status code 500" in capsys.readouterr().err


def test_refresh_flag_forces_download(no_config, fake_service):
    assert cli.main(["--refresh", "SE3", "3"]) == cli.EXIT_PRICE_IS_RIGHT
    assert len(fake_service["service"].fetcher.calls) == 1
    assert fake_service["service"].store.reads == []


def test_write_failure_is_reported_but_not_fatal(no_config, monkeypatch, clock, sample_payload, capsys):
    def factory(container, logger=None):
        return PriceService(MemoryStore(fail_write=True), StubFetcher(payload=sample_payload), tzinfo=CET, clock=clock)

    monkeypatch.setattr(PriceService, "from_container", factory)

    assert cli.main(["SE3", "3"]) == cli.EXIT_PRICE_IS_RIGHT
    assert "warning:" in capsys.readouterr().err


def test_unknown_option_exits_with_error_code(no_config):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--bogus"])
    assert exc_info.value.code == cli.EXIT_ERROR


def test_negative_threshold_is_accepted(no_config, fake_service):
    assert cli.main(["SE3", "-0.5"]) == cli.EXIT_PRICE_IS_WRONG
