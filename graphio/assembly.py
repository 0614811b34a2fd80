"""
Turn the decoded token list into a cross-referenced :class:`GameData`.

Blocks appear in a fixed order: machines, beacons, recipes, items (modules are
items with an extra effects section) and fluids.  Two cross-reference steps
run on the way:

* a module without explicit limitations is supported by every recipe that has
  been read so far, otherwise by each recipe it lists;
* once every module is known, machines and beacons get the modules whose
  non-zero effects they allow.

The allowed-effects flags of machines and beacons are only needed for the
second step and are not kept on the entities.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .entities import (
    Beacon,
    BeaconID,
    FixedAmount,
    Fluid,
    FluidID,
    FluidIngredient,
    FluidProduct,
    GameData,
    Ingredient,
    Item,
    ItemID,
    ItemIngredient,
    ItemProduct,
    Machine,
    MachineID,
    Module,
    ProbabilityAmount,
    Product,
    Recipe,
    RecipeID,
)
from .errors import SchemaMismatch, UnresolvedReference
from .logging import EntryLogger, log_counts
from .records import AllowedEffects, TokenReader
from .symbols import SymbolTable

RESOURCE_KINDS = ("item", "fluid")
AMOUNT_KINDS = ("fixed", "probability")


def assemble_game_data(
    tokens: Sequence[str],
    symbols: SymbolTable,
    *,
    logger: Optional[EntryLogger] = None,
) -> GameData:
    reader = TokenReader(tokens, symbols)
    counts = reader.read_header()

    machines: Dict[MachineID, Machine] = {}
    machine_effects: Dict[MachineID, AllowedEffects] = {}
    for _ in range(counts.machines):
        machine, effects = read_machine(reader)
        machines[machine.id] = machine
        machine_effects[machine.id] = effects
        _log(logger, "machine", machine.id.text, machine.metadata.localised_name)
    _check_count("machines", counts.machines, len(machines))

    beacons: Dict[BeaconID, Beacon] = {}
    beacon_effects: Dict[BeaconID, AllowedEffects] = {}
    for _ in range(counts.beacons):
        beacon, effects = read_beacon(reader)
        beacons[beacon.id] = beacon
        beacon_effects[beacon.id] = effects
        _log(logger, "beacon", beacon.id.text, beacon.metadata.localised_name)
    _check_count("beacons", counts.beacons, len(beacons))

    recipes: Dict[RecipeID, Recipe] = {}
    for _ in range(counts.recipes):
        recipe = read_recipe(reader)
        recipes[recipe.id] = recipe
        _log(logger, "recipe", recipe.id.text, recipe.metadata.localised_name)
    _check_count("recipes", counts.recipes, len(recipes))

    items: Dict[ItemID, Item] = {}
    modules: Dict[ItemID, Module] = {}
    for _ in range(counts.items):
        item, module, limitations = read_item(reader)
        if module is not None:
            modules[module.id] = module
            apply_module_limitations(recipes, module.id, limitations)
        items[item.id] = item
        _log(logger, "item", item.id.text, item.metadata.localised_name)
    _check_count("items", counts.items, len(items))

    fluids: Dict[FluidID, Fluid] = {}
    for _ in range(counts.fluids):
        fluid = read_fluid(reader)
        fluids[fluid.id] = fluid
        _log(logger, "fluid", fluid.id.text, fluid.metadata.localised_name)
    _check_count("fluids", counts.fluids, len(fluids))

    if not reader.at_end():
        raise SchemaMismatch(
            f"{reader.remaining()} trailing tokens after the declared records "
            f"(stopped at token #{reader.position})"
        )

    for machine_id, effects in machine_effects.items():
        machines[machine_id].supported_modules = supported_modules(modules.values(), effects)
    for beacon_id, effects in beacon_effects.items():
        beacons[beacon_id].supported_modules = supported_modules(modules.values(), effects)

    log_counts(
        logger,
        "assembled",
        [
            ("machines", len(machines)),
            ("beacons", len(beacons)),
            ("recipes", len(recipes)),
            ("items", len(items)),
            ("modules", len(modules)),
            ("fluids", len(fluids)),
        ],
    )
    return GameData(
        items=items,
        fluids=fluids,
        recipes=recipes,
        machines=machines,
        beacons=beacons,
        modules=modules,
    )


# ---------------------------------------------------------------------------
# Per-record readers
# ---------------------------------------------------------------------------


def read_machine(reader: TokenReader) -> Tuple[Machine, AllowedEffects]:
    id_ = MachineID(reader.read_str())
    metadata = reader.read_metadata()
    crafting_speed = reader.read_ratio()
    energy_consumption = reader.read_ratio()
    energy_drain = reader.read_ratio()
    module_slots = reader.read_int()
    effects = reader.read_allowed_effects()
    machine = Machine(
        id=id_,
        metadata=metadata,
        crafting_speed=crafting_speed,
        energy_consumption=energy_consumption,
        energy_drain=energy_drain,
        module_slots=module_slots,
    )
    return machine, effects


def read_beacon(reader: TokenReader) -> Tuple[Beacon, AllowedEffects]:
    id_ = BeaconID(reader.read_str())
    metadata = reader.read_metadata()
    distribution_effectivity = reader.read_ratio()
    effects = reader.read_allowed_effects()
    beacon = Beacon(id=id_, metadata=metadata, distribution_effectivity=distribution_effectivity)
    return beacon, effects


def read_ingredient(reader: TokenReader) -> Ingredient:
    kind = reader.read_kind(RESOURCE_KINDS, "recipe ingredient kind")
    symbol = reader.read_str()
    amount = reader.read_ratio()
    catalyst_amount = reader.read_ratio()
    if kind == "item":
        resource = ItemIngredient(ItemID(symbol))
    else:
        has_minimum, has_maximum = reader.read_flags(2, "optional field flags in ingredient fluid")
        minimum = reader.read_ratio() if has_minimum else None
        maximum = reader.read_ratio() if has_maximum else None
        resource = FluidIngredient(FluidID(symbol), minimum_temperature=minimum, maximum_temperature=maximum)
    return Ingredient(resource=resource, amount=amount, catalyst_amount=catalyst_amount)


def read_product(reader: TokenReader) -> Product:
    kind = reader.read_kind(RESOURCE_KINDS, "recipe product kind")
    symbol = reader.read_str()
    if kind == "item":
        resource = ItemProduct(ItemID(symbol))
    else:
        resource = FluidProduct(FluidID(symbol), temperature=reader.read_ratio())

    amount_kind = reader.read_kind(AMOUNT_KINDS, "recipe product amount kind")
    if amount_kind == "fixed":
        amount = reader.read_ratio()
        catalyst_amount = reader.read_ratio()
        return Product(resource=resource, amount=FixedAmount(amount, catalyst_amount))
    amount_min = reader.read_ratio()
    amount_max = reader.read_ratio()
    probability = reader.read_ratio()
    return Product(resource=resource, amount=ProbabilityAmount(amount_min, amount_max, probability))


def read_recipe(reader: TokenReader) -> Recipe:
    id_ = RecipeID(reader.read_str())
    metadata = reader.read_metadata()
    time = reader.read_ratio()
    ingredients = [read_ingredient(reader) for _ in range(reader.read_usize())]
    products = [read_product(reader) for _ in range(reader.read_usize())]
    crafted_in = {MachineID(reader.read_str()) for _ in range(reader.read_usize())}
    return Recipe(
        id=id_,
        metadata=metadata,
        time=time,
        ingredients=ingredients,
        products=products,
        crafted_in=crafted_in,
    )


def read_item(reader: TokenReader) -> Tuple[Item, Optional[Module], Optional[List[RecipeID]]]:
    """
    Read one item.  For modules also return the module and its explicit
    recipe limitations (``None`` when the module declares none).
    """

    id_ = ItemID(reader.read_str())
    metadata = reader.read_metadata()
    item = Item(id=id_, metadata=metadata)
    if not reader.read_flag("module flag on item"):
        return item, None, None

    module = Module(
        id=id_,
        modifier_energy=reader.read_ratio(),
        modifier_speed=reader.read_ratio(),
        modifier_productivity=reader.read_ratio(),
        modifier_pollution=reader.read_ratio(),
    )
    limitations: Optional[List[RecipeID]] = None
    if reader.read_flag("limitations flag on item"):
        limitations = [RecipeID(reader.read_str()) for _ in range(reader.read_usize())]
    return item, module, limitations


def read_fluid(reader: TokenReader) -> Fluid:
    id_ = FluidID(reader.read_str())
    return Fluid(id=id_, metadata=reader.read_metadata())


# ---------------------------------------------------------------------------
# Cross-referencing
# ---------------------------------------------------------------------------


def apply_module_limitations(
    recipes: Dict[RecipeID, Recipe],
    module_id: ItemID,
    limitations: Optional[Iterable[RecipeID]],
) -> None:
    """
    Register ``module_id`` on the recipes it may be used with.  Without
    explicit limitations that is every recipe currently in ``recipes``.
    """

    targets = list(recipes) if limitations is None else limitations
    for recipe_id in targets:
        recipe = recipes.get(recipe_id)
        if recipe is None:
            raise UnresolvedReference(
                f"module {module_id.text!r} limitation contains non-existent recipe {recipe_id.text!r}"
            )
        recipe.supported_modules.add(module_id)


def module_allowed(module: Module, effects: AllowedEffects) -> bool:
    return (
        (effects.energy or module.modifier_energy == 0)
        and (effects.speed or module.modifier_speed == 0)
        and (effects.productivity or module.modifier_productivity == 0)
        and (effects.pollution or module.modifier_pollution == 0)
    )


def supported_modules(modules: Iterable[Module], effects: AllowedEffects) -> Set[ItemID]:
    return {module.id for module in modules if module_allowed(module, effects)}


def _check_count(category: str, declared: int, actual: int) -> None:
    if declared != actual:
        raise SchemaMismatch(
            f"duplicate {category} in exported data set: header declares {declared}, got {actual} distinct"
        )


def _log(logger: Optional[EntryLogger], kind: str, id_text: str, name) -> None:
    if logger is not None:
        logger.record(kind, id_text, name)
