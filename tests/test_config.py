"""Settings file loading and saving."""

import json
import os

import pytest

from config import load_data, load_settings, save_settings, settings_from_dict, settings_to_dict
from errors import UnsupportedFormatError
from models import ExportSettings, PrintFormatOption


def write_json(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


class TestLoad:
    def test_relative_refs_resolve_against_file(self, tmp_path):
        path = write_json(
            tmp_path / "settings.json",
            {
                "version": 1,
                "settings": {
                    "file_name": "site-plan",
                    "page_formats": ["a3", "a4"],
                    "facing_images": {"N": "icons/north.png", "S": "https://example.com/s.png"},
                    "logo_url": "logo.png",
                    "output_dir": "exports",
                },
            },
        )
        s = load_settings(path)

        assert s.file_name == "site-plan"
        assert s.page_formats == ["a3", "a4"]
        assert s.facing_images["N"] == os.path.join(str(tmp_path), "icons", "north.png")
        assert s.facing_images["S"] == "https://example.com/s.png"
        assert s.logo_url == os.path.join(str(tmp_path), "logo.png")
        assert s.output_dir == os.path.join(str(tmp_path), "exports")

    def test_overrides_win(self, tmp_path):
        errors = []
        path = write_json(tmp_path / "s.json", {"version": 1, "settings": {"file_name": "a"}})
        s = load_settings(path, file_name="b", on_error=errors.append)
        assert s.file_name == "b"
        assert s.on_error is not None

    def test_bad_version(self):
        with pytest.raises(ValueError):
            settings_from_dict({"version": 2, "settings": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError):
            settings_from_dict({"version": 1, "settings": {"colour": "red"}})

    def test_callbacks_cannot_be_configured(self):
        with pytest.raises(ValueError):
            settings_from_dict({"version": 1, "settings": {"on_error": "print"}})

    def test_enabled_placeholder(self):
        with pytest.raises(UnsupportedFormatError):
            settings_from_dict({"version": 1, "settings": {"print_formats": [{"label": "dwg", "disabled": False}]}})

    def test_unknown_print_label(self):
        with pytest.raises(UnsupportedFormatError):
            settings_from_dict({"version": 1, "settings": {"print_formats": [{"label": "bmp"}]}})


class TestSave:
    def test_round_trip(self, tmp_path):
        original = ExportSettings(
            file_name="plan",
            page_formats=["a2", "a5"],
            print_formats=[PrintFormatOption("pdf"), PrintFormatOption("dxf", True)],
            facing_images={"E": str(tmp_path / "east.png")},
            output_dir=str(tmp_path / "out"),
            quality=0.8,
            on_error=print,
        )
        path = str(tmp_path / "nested" / "settings.json")
        save_settings(original, path)

        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        assert raw["version"] == 1
        assert "on_error" not in raw["settings"]

        loaded = load_settings(path)
        assert loaded.file_name == "plan"
        assert loaded.page_formats == ["a2", "a5"]
        assert loaded.print_formats == original.print_formats
        assert loaded.facing_images == original.facing_images
        assert loaded.quality == 0.8

    def test_dict_shape(self):
        out = settings_to_dict(ExportSettings(output_dir="/tmp"))
        assert out["settings"]["print_formats"][3] == {"label": "dwg", "disabled": True}


class TestData:
    def test_no_path(self):
        assert load_data(None) == {}

    def test_object(self, tmp_path):
        assert load_data(write_json(tmp_path / "d.json", {"title": "Plan"})) == {"title": "Plan"}

    def test_non_object(self, tmp_path):
        with pytest.raises(ValueError):
            load_data(write_json(tmp_path / "d.json", ["Plan"]))
