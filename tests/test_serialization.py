"""Tests for the JSON document form of the game data."""
import json
from fractions import Fraction

import pytest

from graphio.entities import ItemID, MachineID, RecipeID
from graphio.errors import MalformedRecord, NumericParseError, UnknownVariant
from graphio.icons import transform_icons
from graphio.serialization import (
    dump_game_data,
    dump_tokens,
    game_data_from_document,
    game_data_to_document,
    load_game_data,
    load_tokens,
)
from graphio.symbols import SymbolTable


def by_id(entries, id_text):
    (entry,) = [entry for entry in entries if entry["id"] == id_text]
    return entry


class TestDocumentShape:
    def test_collections_are_sorted_by_id(self, game_data):
        doc = game_data_to_document(game_data)
        assert [item["id"] for item in doc["items"]] == [
            "efficiency-module",
            "iron-gear",
            "iron-plate",
            "productivity-module",
            "speed-module",
        ]
        assert "tile_metadata" not in doc

    def test_rationals_are_canonical_strings(self, game_data):
        doc = game_data_to_document(game_data)
        assembler = by_id(doc["machines"], "assembler")
        assert assembler["crafting_speed"] == "3/4"
        assert assembler["energy_consumption"] == "75000"
        assert assembler["module_slots"] == "4"
        module = by_id(doc["modules"], "efficiency-module")
        assert module["modifier_energy"] == "-3/10"

    def test_optional_metadata_is_omitted(self, game_data):
        doc = game_data_to_document(game_data)
        plate = by_id(doc["items"], "iron-plate")
        assert plate == {"id": "iron-plate", "localised_name": "Iron plate"}
        gear = by_id(doc["items"], "iron-gear")
        assert gear["localised_description"] == "Used in machines."

    def test_tagged_unions_are_flattened(self, game_data):
        doc = game_data_to_document(game_data)
        steam = by_id(doc["recipes"], "steam")
        assert steam["ingredients"] == [
            {"type": "fluid", "id": "water", "minimum_temperature": "15", "amount": "60", "catalyst_amount": "0"}
        ]
        assert steam["products"] == [
            {
                "type": "fluid",
                "id": "steam",
                "temperature": "165",
                "amount_type": "probability",
                "amount_min": "55",
                "amount_max": "60",
                "probability": "1/2",
            }
        ]
        assert steam["crafted_in"] == ["assembler", "furnace"]
        gear = by_id(doc["recipes"], "iron-gear")
        assert gear["products"][0]["amount_type"] == "fixed"
        assert gear["supported_modules"] == ["efficiency-module", "productivity-module", "speed-module"]

    def test_document_is_json_compatible(self, game_data):
        doc = game_data_to_document(game_data)
        assert json.loads(json.dumps(doc)) == doc


class TestRestore:
    def test_same_table_restores_equal_model(self, game_data, symbols):
        restored = game_data_from_document(game_data_to_document(game_data), symbols)
        assert restored == game_data

    def test_fresh_table_restores_equal_document(self, game_data):
        doc = game_data_to_document(game_data)
        restored = game_data_from_document(doc, SymbolTable())
        assert game_data_to_document(restored) == doc

    def test_icons_and_tile_metadata(self, game_data, icon_root, symbols):
        updated, _ = transform_icons(game_data, icon_root)
        doc = game_data_to_document(updated)
        assert doc["tile_metadata"] == {"tile_size": [32, 32], "tile_count": 11, "image_size": [128, 96]}
        assert all(isinstance(item["icon"], int) and item["icon"] >= 1 for item in doc["items"])
        restored = game_data_from_document(doc, symbols)
        assert restored == updated
        assert restored.metadata(MachineID(symbols.intern("furnace"))).icon.number >= 1

    def test_big_values_are_exact(self, game_data, symbols):
        machine = game_data.machines[MachineID(symbols.intern("assembler"))]
        machine.module_slots = 10**40
        machine.energy_drain = Fraction(10**30 + 1, 7)
        restored = game_data_from_document(game_data_to_document(game_data), symbols)
        restored_machine = restored.machines[machine.id]
        assert restored_machine.module_slots == 10**40
        assert restored_machine.energy_drain == Fraction(10**30 + 1, 7)

    def test_missing_field(self, game_data, symbols):
        doc = game_data_to_document(game_data)
        del doc["recipes"][0]["time"]
        with pytest.raises(MalformedRecord, match="recipes\\[0\\]: missing field 'time'"):
            game_data_from_document(doc, symbols)

    def test_unknown_product_type(self, game_data, symbols):
        doc = game_data_to_document(game_data)
        by_id(doc["recipes"], "iron-gear")["products"][0]["type"] = "energy"
        with pytest.raises(UnknownVariant, match="'energy'"):
            game_data_from_document(doc, symbols)

    def test_bad_ratio(self, game_data, symbols):
        doc = game_data_to_document(game_data)
        by_id(doc["machines"], "furnace")["crafting_speed"] = "2.0"
        with pytest.raises(NumericParseError):
            game_data_from_document(doc, symbols)

    def test_tile_size_must_be_integers(self, game_data, icon_root, symbols):
        updated, _ = transform_icons(game_data, icon_root)
        doc = game_data_to_document(updated)
        doc["tile_metadata"]["tile_size"] = ["a", 1]
        with pytest.raises(MalformedRecord, match="'tile_size' must be two integers"):
            game_data_from_document(doc, symbols)

    @pytest.mark.parametrize("icon", ["3", 2.5, True])
    def test_icon_must_be_an_integer(self, game_data, symbols, icon):
        doc = game_data_to_document(game_data)
        by_id(doc["items"], "iron-plate")["icon"] = icon
        with pytest.raises(MalformedRecord, match="'icon' must be an integer"):
            game_data_from_document(doc, symbols)

    def test_icon_numbers_start_at_one(self, game_data, symbols):
        doc = game_data_to_document(game_data)
        by_id(doc["fluids"], "water")["icon"] = 0
        with pytest.raises(MalformedRecord, match="icon number must be >= 1"):
            game_data_from_document(doc, symbols)

    def test_supported_modules_must_be_a_list(self, game_data, symbols):
        doc = game_data_to_document(game_data)
        by_id(doc["machines"], "assembler")["supported_modules"] = 5
        with pytest.raises(MalformedRecord, match="'supported_modules' must be a list"):
            game_data_from_document(doc, symbols)

    def test_document_must_be_an_object(self, symbols):
        with pytest.raises(MalformedRecord, match="expected an object"):
            game_data_from_document(["items"], symbols)


class TestFiles:
    def test_game_data_file(self, tmp_path, game_data, symbols):
        path = tmp_path / "out" / "game_data.json"
        dump_game_data(game_data, path)
        restored = load_game_data(path, symbols)
        assert restored == game_data
        assert restored.recipes[RecipeID(symbols.intern("iron-gear"))].supported_modules
        assert ItemID(symbols.intern("speed-module")) in restored.modules

    def test_tokens_file(self, tmp_path, sample_tokens):
        path = tmp_path / "prototypes.json"
        dump_tokens(sample_tokens, path)
        assert load_tokens(path) == sample_tokens

    def test_tokens_file_must_hold_strings(self, tmp_path):
        path = tmp_path / "prototypes.json"
        path.write_text(json.dumps(["a", 1]), encoding="utf-8")
        with pytest.raises(MalformedRecord):
            load_tokens(path)

    def test_invalid_json_game_data(self, tmp_path, symbols):
        path = tmp_path / "game_data.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(MalformedRecord, match="not valid JSON"):
            load_game_data(path, symbols)

    def test_invalid_json_tokens(self, tmp_path):
        path = tmp_path / "prototypes.json"
        path.write_text('["a", ', encoding="utf-8")
        with pytest.raises(MalformedRecord, match="not valid JSON"):
            load_tokens(path)

    def test_tokens_file_must_be_utf8(self, tmp_path):
        path = tmp_path / "prototypes.json"
        path.write_bytes(b'["\xff"]')
        with pytest.raises(MalformedRecord, match="not UTF-8"):
            load_tokens(path)
