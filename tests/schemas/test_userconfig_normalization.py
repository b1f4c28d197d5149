import pytest

from ramproj.schemas.user import UserConfig


def test_uppercase_keys_are_handled():
    raw = {
        "MODE": " Sum ",
        "DIRECTION": "X",
        "MAX_WORKERS": 4,
        "CHUNK_PIXELS": 1000,
        "SHOW_PROGRESS": True,
    }

    user = UserConfig.model_validate(raw)

    assert user.mode == "sum"
    assert user.direction == "x"
    assert user.max_workers == 4
    assert user.chunk_pixels == 1000
    assert user.show_progress is True


def test_unknown_keys_are_ignored():
    raw = {"MODE": "mean", "RADIUS_UNIT": "kpc"}
    user = UserConfig.model_validate(raw)

    assert user.mode == "mean"
    # Unknown key should not become an attribute nor raise
    assert not hasattr(user, "RADIUS_UNIT")


def test_overrides_only_carry_given_values():
    user = UserConfig(MAX_WORKERS=2, LOG_LEVEL="debug")

    assert user.to_internal_overrides() == {
        "parallel": {"max_workers": 2},
        "logging": {"level": "debug"},
    }


def test_empty_config_has_no_overrides():
    assert UserConfig().to_internal_overrides() == {}


@pytest.mark.parametrize("key", ["MAX_WORKERS", "CHUNK_PIXELS"])
def test_non_integer_worker_settings_rejected(key):
    with pytest.raises(ValueError):
        UserConfig.model_validate({key: "many"})
