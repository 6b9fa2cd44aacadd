import pytest

from quire.config import (
    DEFAULT_CONFIG,
    MenuEntry,
    SocialLink,
    load_config,
    resolve_environment,
)
from quire.errors import ConfigError


def test_missing_file_uses_defaults(tmp_path):
    config = load_config(tmp_path)
    assert config.title == DEFAULT_CONFIG["title"]
    assert config.author == "John Doe"
    assert config.favicon == "/favicon.ico"
    assert config.menu_item_separator == " | "
    assert config.menu == ()
    assert config.social == ()
    assert config.main_sections == ("posts",)
    assert config.output_dir == "public"


def test_empty_file_uses_defaults(tmp_path):
    (tmp_path / "quire.yaml").write_text("", encoding="utf-8")
    assert load_config(tmp_path).author == "John Doe"


def test_menu_and_social_keep_order(tmp_path):
    (tmp_path / "quire.yaml").write_text(
        "title: Field Notes\n"
        "author: Ada\n"
        "menu_item_separator: ' / '\n"
        "menu:\n"
        "  - {name: Zeta, url: /zeta/}\n"
        "  - {name: Alpha, url: /alpha/}\n"
        "social:\n"
        "  - {icon: rss, name: Feed, url: /index.xml}\n"
        "  - {icon: github, name: Code, url: https://github.com/ada}\n"
        "style:\n"
        "  link_color: '#ff0000'\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path)
    assert config.title == "Field Notes"
    assert config.author == "Ada"
    assert config.menu_item_separator == " / "
    assert config.menu == (
        MenuEntry(name="Zeta", url="/zeta/"),
        MenuEntry(name="Alpha", url="/alpha/"),
    )
    assert [link.name for link in config.social] == ["Feed", "Code"]
    assert config.social[0] == SocialLink(icon="rss", name="Feed", url="/index.xml")
    assert config.style["link_color"] == "#ff0000"


def test_config_is_immutable(tmp_path):
    config = load_config(tmp_path)
    with pytest.raises(AttributeError):
        config.title = "Changed"
    with pytest.raises(TypeError):
        config.style["link_color"] = "#000"


def test_analytics_only_in_designated_environment(tmp_path):
    (tmp_path / "quire.yaml").write_text("google_analytics: G-TEST\n", encoding="utf-8")
    config = load_config(tmp_path)
    assert config.analytics_enabled("production")
    assert not config.analytics_enabled("development")
    assert not load_config(tmp_path / "missing").analytics_enabled("production")


@pytest.mark.parametrize(
    "text",
    [
        "- not\n- a mapping\n",
        "menu:\n  - {name: Home}\n",
        "social: nope\n",
        "style: [1, 2]\n",
        "summary_length: lots\n",
        "title: [unbalanced\n",
    ],
)
def test_malformed_config_raises(tmp_path, text):
    (tmp_path / "quire.yaml").write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_resolve_environment(monkeypatch):
    monkeypatch.delenv("QUIRE_ENV", raising=False)
    assert resolve_environment() == "development"
    monkeypatch.setenv("QUIRE_ENV", "staging")
    assert resolve_environment() == "staging"
    assert resolve_environment("production") == "production"
