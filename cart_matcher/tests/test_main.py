import json

from cart_matcher.config import OPTIONAL_KEYS, REQUIRED_KEYS
from cart_matcher.main import load_items, main


def test_version(capsys):
    assert main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == "0.1.0"


def test_config_keys(capsys):
    assert main(["config", "keys"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[: len(REQUIRED_KEYS)] == REQUIRED_KEYS
    assert len(out) == len(REQUIRED_KEYS) + len(OPTIONAL_KEYS)


def test_load_items_text(tmp_path):
    path = tmp_path / "list.txt"
    path.write_text("# weekly\n2 lbs chicken breast\n\n1 gallon whole milk\n")
    items = load_items(str(path))
    assert [i.raw_name for i in items] == ["2 lbs chicken breast", "1 gallon whole milk"]
    assert items[0].quantity == 2
    assert items[0].size == "2 lb"


def test_load_items_json(tmp_path):
    path = tmp_path / "cart.json"
    path.write_text(json.dumps(["eggs", {"id": "x", "name": "Whole Milk", "brand": "Horizon"}]))
    items = load_items(str(path))
    assert items[0].raw_name == "eggs"
    assert items[0].id == "0"
    assert items[1].id == "x"
    assert items[1].brand == "Horizon"
