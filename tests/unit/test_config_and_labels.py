from paybridge import config
from paybridge.checkout.labels import LABELS, labels_for


def test_clean_env_strips_quotes_and_spaces():
    assert config._clean_env("  'sup_sk_123' ") == "sup_sk_123"
    assert config._clean_env('"`abc`"') == "abc"
    assert config._clean_env(None) == ""


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("PAYBRIDGE_FLAG", "Yes")
    monkeypatch.setenv("PAYBRIDGE_FLOAT", "oops")
    assert config._env_flag("PAYBRIDGE_FLAG") is True
    assert config._env_float("PAYBRIDGE_FLOAT", 2.0) == 2.0


def test_missing_settings(monkeypatch):
    assert config.missing_settings() == []
    monkeypatch.setattr(config, "SUMUP_EMAIL", "")
    assert config.missing_settings() == ["SUMUP_EMAIL"]


def test_labels_share_the_same_keys():
    keys = set(LABELS["en"])
    for locale, labels in LABELS.items():
        assert set(labels) == keys, locale


def test_labels_fallback_to_english():
    assert labels_for("nl-BE")["title"] == "Veilig betalen"
    assert labels_for("de") is LABELS["en"]
    assert labels_for("") is LABELS["en"]
