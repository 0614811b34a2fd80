"""Builds token streams shaped like the export script's output."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from PIL import Image

START = "\x01"
END = "\x04"
OPEN = "\x02"
CLOSE = "\x03"
SEP = "\x1f"


def localised(key: str, value: Optional[str]) -> str:
    if value is None:
        value = f'Unknown key: "{key}"'
    return f"{key}{SEP}{value}"


def item_ingredient(id_: str, amount: str = "1", catalyst: str = "0") -> List[str]:
    return ["item", id_, amount, catalyst]


def fluid_ingredient(
    id_: str,
    amount: str = "10",
    catalyst: str = "0",
    minimum: Optional[str] = None,
    maximum: Optional[str] = None,
) -> List[str]:
    flags = ("1" if minimum is not None else "0") + ("1" if maximum is not None else "0")
    bounds = [value for value in (minimum, maximum) if value is not None]
    return ["fluid", id_, amount, catalyst, flags, *bounds]


def item_product(id_: str, amount: str = "1", catalyst: str = "0") -> List[str]:
    return ["item", id_, "fixed", amount, catalyst]


def fluid_product(id_: str, temperature: str, amount_min: str, amount_max: str, probability: str) -> List[str]:
    return ["fluid", id_, temperature, "probability", amount_min, amount_max, probability]


class ExportBuilder:
    def __init__(self) -> None:
        self.machines: List[List[str]] = []
        self.beacons: List[List[str]] = []
        self.recipes: List[List[str]] = []
        self.items: List[List[str]] = []
        self.fluids: List[List[str]] = []

    @staticmethod
    def _metadata(category: str, id_: str, name: Optional[str], description: Optional[str]) -> List[str]:
        return [
            localised(f"{category}-name.{id_}", name),
            localised(f"{category}-description.{id_}", description),
        ]

    def machine(
        self,
        id_: str,
        name: str,
        *,
        description: Optional[str] = None,
        crafting_speed: str = "1",
        energy_consumption: str = "75000",
        energy_drain: str = "2500",
        module_slots: str = "2",
        allowed: str = "1111",
    ) -> "ExportBuilder":
        self.machines.append(
            [
                id_,
                *self._metadata("entity", id_, name, description),
                crafting_speed,
                energy_consumption,
                energy_drain,
                module_slots,
                allowed,
            ]
        )
        return self

    def beacon(self, id_: str, name: str, *, effectivity: str = "0.5", allowed: str = "1111") -> "ExportBuilder":
        self.beacons.append([id_, *self._metadata("entity", id_, name, None), effectivity, allowed])
        return self

    def recipe(
        self,
        id_: str,
        name: str,
        *,
        time: str = "0.5",
        ingredients: Sequence[List[str]] = (),
        products: Sequence[List[str]] = (),
        crafted_in: Sequence[str] = (),
    ) -> "ExportBuilder":
        record = [id_, *self._metadata("recipe", id_, name, None), time, str(len(ingredients))]
        for ingredient in ingredients:
            record.extend(ingredient)
        record.append(str(len(products)))
        for product in products:
            record.extend(product)
        record.append(str(len(crafted_in)))
        record.extend(crafted_in)
        self.recipes.append(record)
        return self

    def item(
        self,
        id_: str,
        name: str,
        *,
        description: Optional[str] = None,
        module: Optional[Sequence[str]] = None,
        limitations: Optional[Sequence[str]] = None,
    ) -> "ExportBuilder":
        record = [id_, *self._metadata("item", id_, name, description)]
        if module is None:
            record.append("0")
        else:
            record.append("1")
            record.extend(module)
            if limitations is None:
                record.append("0")
            else:
                record.extend(["1", str(len(limitations)), *limitations])
        self.items.append(record)
        return self

    def fluid(self, id_: str, name: str) -> "ExportBuilder":
        self.fluids.append([id_, *self._metadata("fluid", id_, name, None)])
        return self

    def header(self) -> str:
        counts = (len(self.machines), len(self.beacons), len(self.recipes), len(self.items), len(self.fluids))
        return SEP.join(str(count) for count in counts)

    def tokens(self, header: Optional[str] = None) -> List[str]:
        tokens = [self.header() if header is None else header]
        for block in (self.machines, self.beacons, self.recipes, self.items, self.fluids):
            for record in block:
                tokens.extend(record)
        return tokens


def frame(tokens: Sequence[str], *, noise: bool = True, crlf: bool = False) -> str:
    newline = "\r\n" if crlf else "\n"
    body = newline.join(f"{OPEN}{token}{CLOSE}" for token in tokens)
    text = f"{START}{body}{newline}{END}"
    if noise:
        text = f"   0.000 Loading mod core{newline}{text}{newline}   1.234 Goodbye{newline}"
    return text


def sample_export() -> ExportBuilder:
    """Two machines, a beacon, two recipes, five items (three modules) and two fluids."""

    builder = ExportBuilder()
    builder.machine("assembler", "Assembling machine", crafting_speed="0.75", module_slots="4")
    builder.machine("furnace", "Furnace", crafting_speed="2", module_slots="2", allowed="1000")
    builder.beacon("beacon", "Beacon", effectivity="0.5", allowed="1100")
    builder.recipe(
        "iron-gear",
        "Iron gear wheel",
        time="0.5",
        ingredients=[item_ingredient("iron-plate", "2")],
        products=[item_product("iron-gear")],
        crafted_in=["assembler"],
    )
    builder.recipe(
        "steam",
        "Steam",
        time="1",
        ingredients=[fluid_ingredient("water", "60", minimum="15")],
        products=[fluid_product("steam", "165", "55", "60", "0.5")],
        crafted_in=["assembler", "furnace"],
    )
    builder.item("iron-plate", "Iron plate")
    builder.item("iron-gear", "Iron gear wheel", description="Used in machines.")
    builder.item("speed-module", "Speed module", module=["0.5", "0.2", "0", "0"])
    builder.item("efficiency-module", "Efficiency module", module=["-0.3", "0", "0", "0"])
    builder.item(
        "productivity-module",
        "Productivity module",
        module=["0.4", "-0.05", "0.04", "0.05"],
        limitations=["iron-gear"],
    )
    builder.fluid("water", "Water")
    builder.fluid("steam", "Steam")
    return builder


def write_render_pair(icon_root: Path, subdir: str, name: str, dark, light) -> None:
    """Write the dark and light renders of one icon as solid 32x32 images."""

    for root, colour in (("dark", dark), ("light", light)):
        directory = icon_root / root / subdir
        directory.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", (32, 32), colour).save(directory / f"{name}.png")
