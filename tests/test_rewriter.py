from dataclasses import replace

import cssutils
import pytest

from shalam.core.packer import pack
from shalam.core.rewriter import format_offset, format_url, rewrite, sprite_url_for
from shalam.core.scanner import scan


def _rewrite(tmp_path, css, sizes, sprite_url="sprite.png"):
    result = scan(css, tmp_path / "site.css", tmp_path / "icons")
    refs = [replace(ref, width=w, height=h) for ref, (w, h) in zip(result.images.values(), sizes)]
    layout = pack(refs)
    return rewrite(result.stylesheet, result.rules, layout, sprite_url)


def test_two_image_scenario(tmp_path):
    css = ".a{background:url(icons/x.png) no-repeat}\n.b{background:url(icons/y.png) no-repeat}\n"
    output = _rewrite(tmp_path, css, [(10, 10), (20, 5)])
    assert output == (
        ".a{background:url(sprite.png) no-repeat;background-position:0 0;}\n"
        ".b{background:url(sprite.png) no-repeat;background-position:0 -11px;}\n"
    )


def test_longhand_rule_keeps_other_declarations_in_order(tmp_path):
    css = (
        ".big { background: url(icons/big.png) no-repeat; }\n"
        ".icon {\n"
        "    color: red;\n"
        "    background-image: url(icons/a.png);\n"
        "    background-position: -2px -4px;\n"
        "    background-color: #eee;\n"
        "}\n"
    )
    output = _rewrite(tmp_path, css, [(20, 20), (4, 4)])
    assert output.endswith(
        ".icon {\n"
        "    color: red;\n"
        "    background-image: url(sprite.png);\n"
        "    background-color: #eee;\n"
        "    background-position: -2px -25px;\n"
        "    background-repeat: no-repeat;\n"
        "}\n"
    )


def test_shorthand_keeps_colour_and_attachment(tmp_path):
    css = '.s { background: #fff url("icons/a.png") no-repeat 3px 4px fixed; }'
    output = _rewrite(tmp_path, css, [(8, 8)])
    assert output == ".s { background: #fff url(sprite.png) no-repeat fixed; background-position: 3px 4px; }"


def test_important_is_carried_to_the_new_position(tmp_path):
    css = ".i{background:url(icons/a.png) no-repeat !important}"
    output = _rewrite(tmp_path, css, [(8, 8)])
    assert output == ".i{background:url(sprite.png) no-repeat !important;background-position:0 0 !important;}"


def test_rules_without_images_pass_through_byte_identical(tmp_path):
    untouched = (
        "/* keep me */\n"
        "html,body  { margin : 0 ;padding:0 }\n"
        "@font-face { font-family: X; src: url(icons/font.woff); }\n"
        ".remote { background: url(https://cdn.example.com/r.png) repeat; }\n"
    )
    css = untouched + ".a{background:url(icons/a.png) no-repeat}\n"
    output = _rewrite(tmp_path, css, [(8, 8)])
    assert output.startswith(untouched)

    plain = _rewrite(tmp_path, untouched, [])
    assert plain == untouched


def test_rules_nested_in_media_queries_are_rewritten(tmp_path):
    css = "@media (min-width: 10px) {\n  .m { background: url(icons/m.png) no-repeat }\n}\n"
    output = _rewrite(tmp_path, css, [(6, 6)], sprite_url="../img/sprite.png")
    assert output == (
        "@media (min-width: 10px) {\n"
        "  .m { background: url(../img/sprite.png) no-repeat; background-position: 0 0; }\n"
        "}\n"
    )


def test_shared_image_rules_point_at_the_same_region(tmp_path):
    css = (
        ".big{background:url(icons/big.png) no-repeat}\n"
        ".one{background:url(icons/a.png) no-repeat}\n"
        ".two{background:url(icons/a.png) no-repeat 1px 2px}\n"
    )
    output = _rewrite(tmp_path, css, [(20, 20), (4, 4)])
    assert ".one{background:url(sprite.png) no-repeat;background-position:0 -21px;}" in output
    assert ".two{background:url(sprite.png) no-repeat;background-position:1px -19px;}" in output


def test_output_is_valid_css(tmp_path):
    css = (
        "a{color:blue}\n"
        ".a{background:url(icons/x.png) no-repeat}\n"
        ".b {\n  background-image: url('icons/y.png');\n  background-position: 1px 1px;\n}\n"
    )
    output = _rewrite(tmp_path, css, [(10, 10), (20, 5)], sprite_url="my sprite.png")
    parser = cssutils.CSSParser(raiseExceptions=True, validate=False)
    sheet = parser.parseString(output)
    selectors = [rule.selectorText for rule in sheet.cssRules if rule.type == rule.STYLE_RULE]
    assert selectors == ["a", ".a", ".b"]
    assert 'url("my sprite.png")' in output


def test_url_glued_to_the_next_component_is_rewritten(tmp_path):
    css = ".a{background:url(icons/x.png)no-repeat}\n.b{background:url(icons/y.png)0 0}\n"
    output = _rewrite(tmp_path, css, [(10, 10), (20, 5)])
    assert output == (
        ".a{background:url(sprite.png) no-repeat;background-position:0 0;}\n"
        ".b{background:url(sprite.png) no-repeat;background-position:0 -11px;}\n"
    )


def test_nested_rules_survive_rewriting(tmp_path):
    css = ".n{background:url(icons/n.png) no-repeat; &:hover{color:blue}}\n.p{color:red; & .q{color:green}}\n"
    output = _rewrite(tmp_path, css, [(6, 6)])
    assert output == (
        ".n{background:url(sprite.png) no-repeat;background-position:0 0; &:hover{color:blue}}\n"
        ".p{color:red; & .q{color:green}}\n"
    )


def test_sprite_url_is_relative_to_the_stylesheet(tmp_path):
    sprite = tmp_path / "out" / "img" / "sprite.png"
    css = tmp_path / "out" / "css" / "site.css"
    assert sprite_url_for(sprite, css) == "../img/sprite.png"
    assert sprite_url_for(tmp_path / "s.png", tmp_path / "site.css") == "s.png"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("sprite.png", "url(sprite.png)"),
        ("my sprite.png", 'url("my sprite.png")'),
        ('we"ird.png', 'url("we\\"ird.png")'),
    ],
)
def test_format_url(url, expected):
    assert format_url(url) == expected


def test_format_offset():
    assert format_offset(0) == "0"
    assert format_offset(-11) == "-11px"
    assert format_offset(4) == "4px"
