import json

import pytest

from shalam import cli


def test_build_parser_creates_arguments():
    parser = cli.build_parser()
    args = parser.parse_args(["site.css", "img", "sprite.png", "--padding", "2", "--max-width", "128", "--dry-run"])
    assert args.css.name == "site.css"
    assert args.img == "img"
    assert args.sprite.name == "sprite.png"
    assert args.padding == 2
    assert args.max_width == 128
    assert args.dry_run is True


def test_main_dry_run_returns_zero(scenario, capsys):
    argv = [str(scenario.css_path), str(scenario.image_dir), str(scenario.sprite_path), "--dry-run"]
    assert cli.main(argv) == 0
    assert capsys.readouterr().out.startswith("site: ")
    assert not scenario.sprite_path.exists()


def test_main_builds_sprite(scenario):
    argv = [str(scenario.css_path), str(scenario.image_dir), str(scenario.sprite_path)]
    assert cli.main(argv) == 0
    assert scenario.sprite_path.exists()
    assert "background-position:0 -11px" in scenario.css_path.read_text(encoding="utf-8")


def test_main_reports_failed_instruction(scenario):
    scenario.css_path.write_text(".m{background:url(icons/missing.png) no-repeat}", encoding="utf-8")
    argv = [str(scenario.css_path), str(scenario.image_dir), str(scenario.sprite_path)]
    assert cli.main(argv) == 1
    assert not scenario.sprite_path.exists()


def test_main_runs_selected_config_instructions(scenario):
    package_json = scenario.root / "package.json"
    package_json.write_text(
        json.dumps(
            {
                "name": "site",
                "shalam": [
                    {"name": "site", "css": "css/site.css", "img": "css/icons", "sprite": "css/sprite.png"},
                    {"name": "other", "css": "css/other.css", "img": "css/icons", "sprite": "css/other.png"},
                ],
            }
        ),
        encoding="utf-8",
    )
    assert cli.main(["--config", str(package_json), "--only", "site"]) == 0
    assert scenario.sprite_path.exists()
    assert not (scenario.root / "css" / "other.png").exists()


def test_main_rejects_invalid_settings(scenario):
    argv = [str(scenario.css_path), str(scenario.image_dir), str(scenario.sprite_path), "--padding", "-1"]
    assert cli.main(argv) == 2


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["site.css", "img"],
        ["site.css", "img", "sprite.png", "--only", "site"],
        ["site.css", "img", "sprite.png", "--config", "package.json"],
        ["--config", "package.json", "--output", "out.css"],
    ],
)
def test_usage_errors_exit(argv):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    assert excinfo.value.code == 2
