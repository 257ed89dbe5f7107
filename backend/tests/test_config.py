import pytest
from pydantic import ValidationError

from autotranslate.config import Settings, coerce_positive_int, get_settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.source_lang == "auto"
    assert settings.target_lang == "ko"
    assert settings.mode == "replace"
    assert settings.rate_limit_rps == 4
    assert settings.rate_limit_batch_size == 20
    assert settings.cache_limit == 5000
    assert settings.min_dispatch_interval == 0.25
    assert settings.offline_only is False


@pytest.mark.parametrize(
    "value, expected",
    [(10, 10), ("7", 7), ("3.9", 3), (0, 20), (-5, 20), ("abc", 20), (None, 20)],
)
def test_coerce_positive_int(value, expected) -> None:
    assert coerce_positive_int(value, 20) == expected


def test_invalid_numbers_fall_back_to_defaults() -> None:
    settings = Settings(_env_file=None, rate_limit_rps="fast", rate_limit_batch_size=0, cache_limit=-1)

    assert settings.rate_limit_rps == 4
    assert settings.rate_limit_batch_size == 20
    assert settings.cache_limit == 5000


@pytest.mark.parametrize("rps, interval", [(1, 1.0), (2, 0.5), (4, 0.25), (50, 0.25)])
def test_min_dispatch_interval_has_floor(rps, interval) -> None:
    assert Settings(_env_file=None, rate_limit_rps=rps).min_dispatch_interval == interval


def test_blank_languages_and_unknown_mode_use_defaults() -> None:
    settings = Settings(_env_file=None, source_lang="", target_lang="  ", mode="sideways")

    assert settings.source_lang == "auto"
    assert settings.target_lang == "ko"
    assert settings.mode == "replace"


def test_unknown_provider_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, provider="papago")


def test_provider_is_normalised() -> None:
    assert Settings(_env_file=None, provider=" DeepL ").provider == "deepl"


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("AUTOTRANSLATE_TARGET_LANG", "ja")
    monkeypatch.setenv("AUTOTRANSLATE_RATE_LIMIT_RPS", "2")
    monkeypatch.setenv("AUTOTRANSLATE_OFFLINE_ONLY", "true")

    settings = get_settings()

    assert settings.target_lang == "ja"
    assert settings.rate_limit_rps == 2
    assert settings.offline_only is True


def test_assignment_is_validated() -> None:
    settings = Settings(_env_file=None)

    settings.rate_limit_batch_size = "nope"
    settings.target_lang = ""

    assert settings.rate_limit_batch_size == 20
    assert settings.target_lang == "ko"
