from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from fractions import Fraction
from typing import Callable, ClassVar, Dict, Iterator, List, Optional, Set, Tuple, Union

from .errors import UnresolvedReference
from .symbols import Symbol


# ---------------------------------------------------------------------------
# IDs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _GameID:
    symbol: Symbol

    collection: ClassVar[str] = ""
    kind: ClassVar[str] = ""

    @property
    def text(self) -> str:
        return self.symbol.text

    def __str__(self) -> str:
        return self.symbol.text


@dataclass(frozen=True)
class ItemID(_GameID):
    collection: ClassVar[str] = "items"
    kind: ClassVar[str] = "item"


@dataclass(frozen=True)
class FluidID(_GameID):
    collection: ClassVar[str] = "fluids"
    kind: ClassVar[str] = "fluid"


@dataclass(frozen=True)
class RecipeID(_GameID):
    collection: ClassVar[str] = "recipes"
    kind: ClassVar[str] = "recipe"


@dataclass(frozen=True)
class MachineID(_GameID):
    collection: ClassVar[str] = "machines"
    kind: ClassVar[str] = "machine"


@dataclass(frozen=True)
class BeaconID(_GameID):
    collection: ClassVar[str] = "beacons"
    kind: ClassVar[str] = "beacon"


AnyID = Union[ItemID, FluidID, RecipeID, MachineID, BeaconID]
ID_TYPES: Tuple[type, ...] = (ItemID, FluidID, RecipeID, MachineID, BeaconID)


# ---------------------------------------------------------------------------
# Display metadata and icons
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TileMetadata:
    tile_size: Tuple[int, int]
    tile_count: int
    image_size: Tuple[int, int]

    @property
    def columns(self) -> int:
        return self.image_size[0] // self.tile_size[0]


@dataclass(frozen=True)
class Icon:
    """Slot in the icon atlas, stored 1-based so that 0 never names a tile."""

    number: int

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError(f"icon number must be >= 1, got {self.number}")

    @classmethod
    def from_index(cls, index: int) -> "Icon":
        return cls(index + 1)

    @property
    def index(self) -> int:
        return self.number - 1

    def position(self, tile_metadata: TileMetadata) -> Tuple[int, int]:
        tile_w, tile_h = tile_metadata.tile_size
        columns = tile_metadata.columns
        return (self.index % columns) * tile_w, (self.index // columns) * tile_h


@dataclass(frozen=True)
class Metadata:
    localised_name: Symbol
    localised_description: Optional[Symbol] = None
    icon: Optional[Icon] = None


# ---------------------------------------------------------------------------
# Recipe parts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemIngredient:
    id: ItemID
    kind: ClassVar[str] = "item"


@dataclass(frozen=True)
class FluidIngredient:
    id: FluidID
    minimum_temperature: Optional[Fraction] = None
    maximum_temperature: Optional[Fraction] = None
    kind: ClassVar[str] = "fluid"


@dataclass(frozen=True)
class Ingredient:
    resource: Union[ItemIngredient, FluidIngredient]
    amount: Fraction
    catalyst_amount: Fraction


@dataclass(frozen=True)
class ItemProduct:
    id: ItemID
    kind: ClassVar[str] = "item"


@dataclass(frozen=True)
class FluidProduct:
    id: FluidID
    temperature: Fraction
    kind: ClassVar[str] = "fluid"


@dataclass(frozen=True)
class FixedAmount:
    amount: Fraction
    catalyst_amount: Fraction
    kind: ClassVar[str] = "fixed"


@dataclass(frozen=True)
class ProbabilityAmount:
    amount_min: Fraction
    amount_max: Fraction
    probability: Fraction
    kind: ClassVar[str] = "probability"


@dataclass(frozen=True)
class Product:
    resource: Union[ItemProduct, FluidProduct]
    amount: Union[FixedAmount, ProbabilityAmount]


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass
class Item:
    id: ItemID
    metadata: Metadata


@dataclass
class Fluid:
    id: FluidID
    metadata: Metadata


@dataclass
class Recipe:
    id: RecipeID
    metadata: Metadata
    time: Fraction
    ingredients: List[Ingredient] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)
    crafted_in: Set[MachineID] = field(default_factory=set)
    supported_modules: Set[ItemID] = field(default_factory=set)


@dataclass
class Machine:
    id: MachineID
    metadata: Metadata
    crafting_speed: Fraction
    energy_consumption: Fraction
    energy_drain: Fraction
    module_slots: int
    supported_modules: Set[ItemID] = field(default_factory=set)


@dataclass
class Beacon:
    id: BeaconID
    metadata: Metadata
    distribution_effectivity: Fraction
    supported_modules: Set[ItemID] = field(default_factory=set)


@dataclass
class Module:
    """Module effects; shares its ID with the item the module is."""

    id: ItemID
    modifier_energy: Fraction
    modifier_speed: Fraction
    modifier_productivity: Fraction
    modifier_pollution: Fraction


Entity = Union[Item, Fluid, Recipe, Machine, Beacon]


def _detached(entity, **changes):
    """Copy ``entity`` so that its list and set fields are no longer shared."""

    for f in fields(entity):
        value = getattr(entity, f.name)
        if f.name not in changes and isinstance(value, (list, set)):
            changes[f.name] = type(value)(value)
    return replace(entity, **changes)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


@dataclass
class GameData:
    """
    Every decoded entity, keyed by ID.

    Each collection is a plain ``dict`` from ID to entity, so an entity's
    identity is its key and a lookup never depends on any other field.
    ``tile_metadata`` stays ``None`` until the icon atlas has been built.
    """

    items: Dict[ItemID, Item] = field(default_factory=dict)
    fluids: Dict[FluidID, Fluid] = field(default_factory=dict)
    recipes: Dict[RecipeID, Recipe] = field(default_factory=dict)
    machines: Dict[MachineID, Machine] = field(default_factory=dict)
    beacons: Dict[BeaconID, Beacon] = field(default_factory=dict)
    modules: Dict[ItemID, Module] = field(default_factory=dict)
    tile_metadata: Optional[TileMetadata] = None

    def collection(self, id_: AnyID) -> Dict:
        if not isinstance(id_, ID_TYPES):
            raise TypeError(f"not a game object ID: {id_!r}")
        return getattr(self, id_.collection)

    def try_resolve(self, id_: AnyID) -> Optional[Entity]:
        return self.collection(id_).get(id_)

    def resolve(self, id_: AnyID) -> Entity:
        entity = self.try_resolve(id_)
        if entity is None:
            raise UnresolvedReference(f"unable to resolve {id_.kind} {id_.text!r}")
        return entity

    def try_metadata(self, id_: AnyID) -> Optional[Metadata]:
        entity = self.try_resolve(id_)
        return entity.metadata if entity is not None else None

    def metadata(self, id_: AnyID) -> Metadata:
        return self.resolve(id_).metadata

    def try_module(self, id_: ItemID) -> Optional[Module]:
        return self.modules.get(id_)

    def iter_ids(self) -> Iterator[AnyID]:
        for id_type in ID_TYPES:
            yield from getattr(self, id_type.collection)

    def modify_metadata(self, fn: Callable[[AnyID, Metadata], Metadata]) -> "GameData":
        """Return a copy whose entities carry ``fn(id, metadata)`` as metadata."""

        rewritten = {
            id_type.collection: {
                key: _detached(entity, metadata=fn(key, entity.metadata))
                for key, entity in getattr(self, id_type.collection).items()
            }
            for id_type in ID_TYPES
        }
        modules = {key: _detached(module) for key, module in self.modules.items()}
        return replace(self, modules=modules, **rewritten)
