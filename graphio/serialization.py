"""
JSON document form of :class:`GameData`.

IDs and localised strings are written as their text, rationals and big
integers as canonical strings (``"3/2"``, ``"-7"``), ID sets as sorted lists.
Tagged unions are flattened: a ``type`` key names the resource kind and, for
products, ``amount_type`` names the amount kind with its fields inlined.
Collections are written sorted by ID so equal models give equal documents.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .entities import (
    Beacon,
    BeaconID,
    FixedAmount,
    Fluid,
    FluidID,
    FluidIngredient,
    FluidProduct,
    GameData,
    Icon,
    Ingredient,
    Item,
    ItemID,
    ItemIngredient,
    ItemProduct,
    Machine,
    MachineID,
    Metadata,
    Module,
    ProbabilityAmount,
    Product,
    Recipe,
    RecipeID,
    TileMetadata,
)
from .errors import MalformedRecord, UnknownVariant
from .numeric import format_int, format_ratio, parse_canonical_int, parse_canonical_ratio
from .symbols import SymbolTable

Document = Dict[str, Any]


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _metadata_fields(metadata: Metadata) -> Document:
    doc: Document = {"localised_name": metadata.localised_name.text}
    if metadata.localised_description is not None:
        doc["localised_description"] = metadata.localised_description.text
    if metadata.icon is not None:
        doc["icon"] = metadata.icon.number
    return doc


def _id_list(ids: Iterable) -> List[str]:
    return sorted(id_.text for id_ in ids)


def _ingredient_to_doc(ingredient: Ingredient) -> Document:
    resource = ingredient.resource
    doc: Document = {"type": resource.kind, "id": resource.id.text}
    if isinstance(resource, FluidIngredient):
        if resource.minimum_temperature is not None:
            doc["minimum_temperature"] = format_ratio(resource.minimum_temperature)
        if resource.maximum_temperature is not None:
            doc["maximum_temperature"] = format_ratio(resource.maximum_temperature)
    doc["amount"] = format_ratio(ingredient.amount)
    doc["catalyst_amount"] = format_ratio(ingredient.catalyst_amount)
    return doc


def _product_to_doc(product: Product) -> Document:
    resource = product.resource
    doc: Document = {"type": resource.kind, "id": resource.id.text}
    if isinstance(resource, FluidProduct):
        doc["temperature"] = format_ratio(resource.temperature)
    amount = product.amount
    doc["amount_type"] = amount.kind
    if isinstance(amount, FixedAmount):
        doc["amount"] = format_ratio(amount.amount)
        doc["catalyst_amount"] = format_ratio(amount.catalyst_amount)
    else:
        doc["amount_min"] = format_ratio(amount.amount_min)
        doc["amount_max"] = format_ratio(amount.amount_max)
        doc["probability"] = format_ratio(amount.probability)
    return doc


def _item_to_doc(item: Item) -> Document:
    return {"id": item.id.text, **_metadata_fields(item.metadata)}


def _fluid_to_doc(fluid: Fluid) -> Document:
    return {"id": fluid.id.text, **_metadata_fields(fluid.metadata)}


def _recipe_to_doc(recipe: Recipe) -> Document:
    return {
        "id": recipe.id.text,
        **_metadata_fields(recipe.metadata),
        "time": format_ratio(recipe.time),
        "ingredients": [_ingredient_to_doc(ingredient) for ingredient in recipe.ingredients],
        "products": [_product_to_doc(product) for product in recipe.products],
        "crafted_in": _id_list(recipe.crafted_in),
        "supported_modules": _id_list(recipe.supported_modules),
    }


def _machine_to_doc(machine: Machine) -> Document:
    return {
        "id": machine.id.text,
        **_metadata_fields(machine.metadata),
        "crafting_speed": format_ratio(machine.crafting_speed),
        "energy_consumption": format_ratio(machine.energy_consumption),
        "energy_drain": format_ratio(machine.energy_drain),
        "module_slots": format_int(machine.module_slots),
        "supported_modules": _id_list(machine.supported_modules),
    }


def _beacon_to_doc(beacon: Beacon) -> Document:
    return {
        "id": beacon.id.text,
        **_metadata_fields(beacon.metadata),
        "distribution_effectivity": format_ratio(beacon.distribution_effectivity),
        "supported_modules": _id_list(beacon.supported_modules),
    }


def _module_to_doc(module: Module) -> Document:
    return {
        "id": module.id.text,
        "modifier_energy": format_ratio(module.modifier_energy),
        "modifier_speed": format_ratio(module.modifier_speed),
        "modifier_productivity": format_ratio(module.modifier_productivity),
        "modifier_pollution": format_ratio(module.modifier_pollution),
    }


def _sorted_docs(collection: Dict, encode: Callable[[Any], Document]) -> List[Document]:
    return [encode(collection[key]) for key in sorted(collection, key=lambda id_: id_.text)]


def game_data_to_document(game_data: GameData) -> Document:
    doc: Document = {}
    if game_data.tile_metadata is not None:
        tiles = game_data.tile_metadata
        doc["tile_metadata"] = {
            "tile_size": list(tiles.tile_size),
            "tile_count": tiles.tile_count,
            "image_size": list(tiles.image_size),
        }
    doc["items"] = _sorted_docs(game_data.items, _item_to_doc)
    doc["fluids"] = _sorted_docs(game_data.fluids, _fluid_to_doc)
    doc["recipes"] = _sorted_docs(game_data.recipes, _recipe_to_doc)
    doc["machines"] = _sorted_docs(game_data.machines, _machine_to_doc)
    doc["beacons"] = _sorted_docs(game_data.beacons, _beacon_to_doc)
    doc["modules"] = _sorted_docs(game_data.modules, _module_to_doc)
    return doc


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class _DocumentReader:
    def __init__(self, symbols: SymbolTable) -> None:
        self.symbols = symbols

    @staticmethod
    def field(doc: Document, key: str, where: str) -> Any:
        if not isinstance(doc, dict):
            raise MalformedRecord(f"{where}: expected an object, got {type(doc).__name__}")
        try:
            return doc[key]
        except KeyError:
            raise MalformedRecord(f"{where}: missing field {key!r}") from None

    def text(self, doc: Document, key: str, where: str) -> str:
        value = self.field(doc, key, where)
        if not isinstance(value, str):
            raise MalformedRecord(f"{where}: field {key!r} must be a string")
        return value

    def ratio(self, doc: Document, key: str, where: str):
        return parse_canonical_ratio(self.text(doc, key, where))

    def optional_ratio(self, doc: Document, key: str, where: str):
        if key not in doc:
            return None
        return self.ratio(doc, key, where)

    def items(self, doc: Document, key: str, where: str) -> List[Any]:
        values = self.field(doc, key, where)
        if not isinstance(values, list):
            raise MalformedRecord(f"{where}: field {key!r} must be a list")
        return values

    def integer(self, doc: Document, key: str, where: str) -> int:
        value = self.field(doc, key, where)
        if isinstance(value, bool) or not isinstance(value, int):
            raise MalformedRecord(f"{where}: field {key!r} must be an integer, got {value!r}")
        return value

    def size(self, doc: Document, key: str, where: str) -> Tuple[int, int]:
        values = self.items(doc, key, where)
        if len(values) != 2 or any(isinstance(v, bool) or not isinstance(v, int) for v in values):
            raise MalformedRecord(f"{where}: field {key!r} must be two integers, got {values!r}")
        return values[0], values[1]

    def ids(self, doc: Document, key: str, where: str, id_type) -> set:
        values = self.items(doc, key, where)
        if not all(isinstance(value, str) for value in values):
            raise MalformedRecord(f"{where}: field {key!r} must list ID strings")
        return {id_type(self.symbols.intern(value)) for value in values}

    def metadata(self, doc: Document, where: str) -> Metadata:
        description = None
        if doc.get("localised_description") is not None:
            description = self.symbols.intern(self.text(doc, "localised_description", where))
        icon = None
        if doc.get("icon") is not None:
            number = self.integer(doc, "icon", where)
            if number < 1:
                raise MalformedRecord(f"{where}: icon number must be >= 1, got {number}")
            icon = Icon(number)
        return Metadata(
            localised_name=self.symbols.intern(self.text(doc, "localised_name", where)),
            localised_description=description,
            icon=icon,
        )

    def ingredient(self, doc: Document, where: str) -> Ingredient:
        kind = self.text(doc, "type", where)
        symbol = self.symbols.intern(self.text(doc, "id", where))
        if kind == "item":
            resource = ItemIngredient(ItemID(symbol))
        elif kind == "fluid":
            resource = FluidIngredient(
                FluidID(symbol),
                minimum_temperature=self.optional_ratio(doc, "minimum_temperature", where),
                maximum_temperature=self.optional_ratio(doc, "maximum_temperature", where),
            )
        else:
            raise UnknownVariant(f"{where}: unknown ingredient type {kind!r}")
        return Ingredient(
            resource=resource,
            amount=self.ratio(doc, "amount", where),
            catalyst_amount=self.ratio(doc, "catalyst_amount", where),
        )

    def product(self, doc: Document, where: str) -> Product:
        kind = self.text(doc, "type", where)
        symbol = self.symbols.intern(self.text(doc, "id", where))
        if kind == "item":
            resource = ItemProduct(ItemID(symbol))
        elif kind == "fluid":
            resource = FluidProduct(FluidID(symbol), temperature=self.ratio(doc, "temperature", where))
        else:
            raise UnknownVariant(f"{where}: unknown product type {kind!r}")

        amount_kind = self.text(doc, "amount_type", where)
        if amount_kind == "fixed":
            amount = FixedAmount(self.ratio(doc, "amount", where), self.ratio(doc, "catalyst_amount", where))
        elif amount_kind == "probability":
            amount = ProbabilityAmount(
                self.ratio(doc, "amount_min", where),
                self.ratio(doc, "amount_max", where),
                self.ratio(doc, "probability", where),
            )
        else:
            raise UnknownVariant(f"{where}: unknown product amount type {amount_kind!r}")
        return Product(resource=resource, amount=amount)


def _collect(entries: Sequence[Document], build, category: str) -> Dict:
    collection: Dict = {}
    for position, entry in enumerate(entries):
        entity = build(entry, f"{category}[{position}]")
        collection[entity.id] = entity
    return collection


def game_data_from_document(doc: Document, symbols: SymbolTable) -> GameData:
    r = _DocumentReader(symbols)

    def sym(entry: Document, where: str):
        return symbols.intern(r.text(entry, "id", where))

    items = _collect(
        r.items(doc, "items", "game data"),
        lambda e, w: Item(id=ItemID(sym(e, w)), metadata=r.metadata(e, w)),
        "items",
    )
    fluids = _collect(
        r.items(doc, "fluids", "game data"),
        lambda e, w: Fluid(id=FluidID(sym(e, w)), metadata=r.metadata(e, w)),
        "fluids",
    )
    recipes = _collect(
        r.items(doc, "recipes", "game data"),
        lambda e, w: Recipe(
            id=RecipeID(sym(e, w)),
            metadata=r.metadata(e, w),
            time=r.ratio(e, "time", w),
            ingredients=[
                r.ingredient(part, f"{w}.ingredients[{i}]")
                for i, part in enumerate(r.items(e, "ingredients", w))
            ],
            products=[
                r.product(part, f"{w}.products[{i}]")
                for i, part in enumerate(r.items(e, "products", w))
            ],
            crafted_in=r.ids(e, "crafted_in", w, MachineID),
            supported_modules=r.ids(e, "supported_modules", w, ItemID),
        ),
        "recipes",
    )
    machines = _collect(
        r.items(doc, "machines", "game data"),
        lambda e, w: Machine(
            id=MachineID(sym(e, w)),
            metadata=r.metadata(e, w),
            crafting_speed=r.ratio(e, "crafting_speed", w),
            energy_consumption=r.ratio(e, "energy_consumption", w),
            energy_drain=r.ratio(e, "energy_drain", w),
            module_slots=parse_canonical_int(r.text(e, "module_slots", w)),
            supported_modules=r.ids(e, "supported_modules", w, ItemID),
        ),
        "machines",
    )
    beacons = _collect(
        r.items(doc, "beacons", "game data"),
        lambda e, w: Beacon(
            id=BeaconID(sym(e, w)),
            metadata=r.metadata(e, w),
            distribution_effectivity=r.ratio(e, "distribution_effectivity", w),
            supported_modules=r.ids(e, "supported_modules", w, ItemID),
        ),
        "beacons",
    )
    modules = _collect(
        r.items(doc, "modules", "game data"),
        lambda e, w: Module(
            id=ItemID(sym(e, w)),
            modifier_energy=r.ratio(e, "modifier_energy", w),
            modifier_speed=r.ratio(e, "modifier_speed", w),
            modifier_productivity=r.ratio(e, "modifier_productivity", w),
            modifier_pollution=r.ratio(e, "modifier_pollution", w),
        ),
        "modules",
    )

    tile_metadata: Optional[TileMetadata] = None
    tiles = doc.get("tile_metadata")
    if tiles is not None:
        tile_metadata = TileMetadata(
            tile_size=r.size(tiles, "tile_size", "tile_metadata"),
            tile_count=r.integer(tiles, "tile_count", "tile_metadata"),
            image_size=r.size(tiles, "image_size", "tile_metadata"),
        )

    return GameData(
        items=items,
        fluids=fluids,
        recipes=recipes,
        machines=machines,
        beacons=beacons,
        modules=modules,
        tile_metadata=tile_metadata,
    )


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def dumps_game_data(game_data: GameData) -> str:
    return json.dumps(game_data_to_document(game_data), indent=2, ensure_ascii=False)


def dump_game_data(game_data: GameData, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(dumps_game_data(game_data), encoding="utf-8")


def _read_json(source: Path) -> Any:
    try:
        with source.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise MalformedRecord(f"{source}: not valid JSON: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise MalformedRecord(f"{source}: not UTF-8 text: {exc}") from exc


def load_game_data(source: Path, symbols: SymbolTable) -> GameData:
    return game_data_from_document(_read_json(source), symbols)


def dumps_tokens(tokens: Sequence[str]) -> str:
    return json.dumps(list(tokens), indent=2, ensure_ascii=False)


def load_tokens(source: Path) -> List[str]:
    tokens = _read_json(source)
    if not isinstance(tokens, list) or not all(isinstance(token, str) for token in tokens):
        raise MalformedRecord(f"{source}: expected a JSON array of strings")
    return tokens


def dump_tokens(tokens: Sequence[str], destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(dumps_tokens(tokens), encoding="utf-8")
