from pathlib import Path

import app.config.loader as loader


def _write_config(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")


def test_idea_limits_defaults_when_missing(monkeypatch, tmp_path):
    monkeypatch.setattr(loader, "_CONFIG_PATH", tmp_path / "config.yaml")

    limits = loader.get_idea_limits()

    assert limits == {
        "idea_character_limit": 500,
        "small_group_quota": 4,
        "medium_group_quota": 3,
        "large_group_quota": 2,
    }


def test_idea_limits_coercion(monkeypatch, tmp_path):
    config_path = tmp_path / "config.yaml"
    _write_config(
        config_path,
        "\n".join(
            [
                "ideas:",
                "  idea_character_limit: \"280\"",
                "  quota_by_group_size:",
                "    small: 0",
                "    medium: \"5\"",
                "    large: abc",
            ]
        ),
    )
    monkeypatch.setattr(loader, "_CONFIG_PATH", config_path)

    limits = loader.get_idea_limits()

    assert limits["idea_character_limit"] == 280
    assert limits["small_group_quota"] == 4
    assert limits["medium_group_quota"] == 5
    assert limits["large_group_quota"] == 2


def test_session_settings_are_clamped(monkeypatch, tmp_path):
    config_path = tmp_path / "config.yaml"
    _write_config(
        config_path,
        "\n".join(
            [
                "sessions:",
                "  min_participants: 1",
                "  join_code_length: 40",
            ]
        ),
    )
    monkeypatch.setattr(loader, "_CONFIG_PATH", config_path)

    settings = loader.get_session_settings()

    assert settings["min_participants"] == 2
    assert settings["join_code_length"] == 12


def test_non_mapping_config_falls_back_to_defaults(monkeypatch, tmp_path):
    config_path = tmp_path / "config.yaml"
    _write_config(config_path, "- just\n- a list\n")
    monkeypatch.setattr(loader, "_CONFIG_PATH", config_path)

    assert loader.load_config() == {}
    assert loader.get_session_settings() == {"min_participants": 2, "join_code_length": 6}


def test_access_token_expiry_prefers_config_then_env(monkeypatch, tmp_path):
    config_path = tmp_path / "config.yaml"
    monkeypatch.setattr(loader, "_CONFIG_PATH", config_path)
    monkeypatch.delenv("TERNA_ACCESS_TOKEN_EXPIRE_MINUTES", raising=False)
    assert loader.get_access_token_expire_minutes() == 30

    monkeypatch.setenv("TERNA_ACCESS_TOKEN_EXPIRE_MINUTES", "45")
    assert loader.get_access_token_expire_minutes() == 45

    _write_config(config_path, "auth:\n  access_token_expire_minutes: 15\n")
    assert loader.get_access_token_expire_minutes() == 15


def test_secure_cookies_env_overrides_config(monkeypatch, tmp_path):
    config_path = tmp_path / "config.yaml"
    _write_config(config_path, "auth:\n  secure_cookies: true\n")
    monkeypatch.setattr(loader, "_CONFIG_PATH", config_path)

    monkeypatch.delenv("TERNA_SECURE_COOKIES", raising=False)
    assert loader.get_secure_cookies_enabled() is True

    monkeypatch.setenv("TERNA_SECURE_COOKIES", "false")
    assert loader.get_secure_cookies_enabled() is False
