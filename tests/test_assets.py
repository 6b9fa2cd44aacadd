import re

import pytest
from jinja2 import UndefinedError

from quire.assets import AssetPipeline, Stylesheet
from quire.theme import Theme


def test_stylesheet_uses_theme_variables(tmp_path):
    pipeline = AssetPipeline(Theme(), tmp_path / "static", tmp_path / "public")
    stylesheet = pipeline.compile_stylesheet()
    assert "--link: #1a5fb4;" in stylesheet.css
    assert ".highlight" in stylesheet.css


def test_style_override_changes_fingerprint(tmp_path):
    pipeline = AssetPipeline(Theme(), tmp_path / "static", tmp_path / "public")
    default = pipeline.compile_stylesheet()
    again = pipeline.compile_stylesheet({})
    custom = pipeline.compile_stylesheet({"link_color": "#ff0000"})

    assert default.fingerprint == again.fingerprint
    assert custom.fingerprint != default.fingerprint
    assert "--link: #ff0000;" in custom.css


def test_stylesheet_properties(tmp_path):
    stylesheet = Stylesheet("body { color: red; }\n")
    assert re.fullmatch(r"[0-9a-f]{16}", stylesheet.fingerprint)
    assert stylesheet.url == f"/css/style.{stylesheet.fingerprint}.css"
    assert stylesheet.integrity.startswith("sha256-")

    written = stylesheet.write(tmp_path)
    assert written == tmp_path / "css" / f"style.{stylesheet.fingerprint}.css"
    assert written.read_text(encoding="utf-8") == stylesheet.css


def test_unknown_variable_is_an_error(tmp_path):
    theme_root = tmp_path / "theme"
    (theme_root / "assets").mkdir(parents=True)
    (theme_root / "variables.yaml").write_text("text_color: '#000'\n", encoding="utf-8")
    (theme_root / "assets" / "style.css.jinja").write_text(
        "body { color: {{ text_colour }}; }\n", encoding="utf-8"
    )
    pipeline = AssetPipeline(Theme(root=theme_root), tmp_path / "static", tmp_path / "out")
    with pytest.raises(UndefinedError):
        pipeline.compile_stylesheet()


def test_copy_static(tmp_path):
    static = tmp_path / "static"
    (static / "img").mkdir(parents=True)
    (static / "robots.txt").write_text("User-agent: *\n", encoding="utf-8")
    (static / "img" / "logo.png").write_bytes(b"\x89PNG")
    output = tmp_path / "public"

    written = AssetPipeline(Theme(), static, output).copy_static()

    assert written == [output / "img" / "logo.png", output / "robots.txt"]
    assert (output / "img" / "logo.png").read_bytes() == b"\x89PNG"


def test_copy_static_without_directory(tmp_path):
    pipeline = AssetPipeline(Theme(), tmp_path / "missing", tmp_path / "public")
    assert pipeline.copy_static() == []


def test_theme_icon_names_are_validated():
    theme = Theme()
    assert theme.icon("GitHub") is not None
    assert theme.icon("../secrets") is None
    assert theme.icon("unknown") is None
