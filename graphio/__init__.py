"""
Game data extraction: decode the export script's record stream into a typed,
cross-referenced model and pack the rendered icons into one atlas.
"""

from .assembly import assemble_game_data, apply_module_limitations, module_allowed, supported_modules
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
from .errors import (
    EmptyDataSet,
    ExtractionError,
    ImageDimensionMismatch,
    MalformedRecord,
    NumericParseError,
    SchemaMismatch,
    UnknownVariant,
    UnresolvedReference,
)
from .icons import atlas_geometry, pack_atlas, recover_alpha, transform_icons, write_atlas
from .logging import EntryLogger
from .numeric import approximate_fraction, format_ratio, parse_canonical_ratio, parse_int, parse_ratio
from .records import RecordCounts, TokenReader, decode_output, extract_payload
from .serialization import (
    dump_game_data,
    dump_tokens,
    game_data_from_document,
    game_data_to_document,
    load_game_data,
    load_tokens,
)
from .staging import create_dir_safely, write_file_safely
from .symbols import Symbol, SymbolTable

__all__ = [
    "assemble_game_data",
    "apply_module_limitations",
    "module_allowed",
    "supported_modules",
    "Beacon",
    "BeaconID",
    "FixedAmount",
    "Fluid",
    "FluidID",
    "FluidIngredient",
    "FluidProduct",
    "GameData",
    "Icon",
    "Ingredient",
    "Item",
    "ItemID",
    "ItemIngredient",
    "ItemProduct",
    "Machine",
    "MachineID",
    "Metadata",
    "Module",
    "ProbabilityAmount",
    "Product",
    "Recipe",
    "RecipeID",
    "TileMetadata",
    "EmptyDataSet",
    "ExtractionError",
    "ImageDimensionMismatch",
    "MalformedRecord",
    "NumericParseError",
    "SchemaMismatch",
    "UnknownVariant",
    "UnresolvedReference",
    "atlas_geometry",
    "pack_atlas",
    "recover_alpha",
    "transform_icons",
    "write_atlas",
    "EntryLogger",
    "approximate_fraction",
    "format_ratio",
    "parse_canonical_ratio",
    "parse_int",
    "parse_ratio",
    "RecordCounts",
    "TokenReader",
    "decode_output",
    "extract_payload",
    "dump_game_data",
    "dump_tokens",
    "game_data_from_document",
    "game_data_to_document",
    "load_game_data",
    "load_tokens",
    "create_dir_safely",
    "write_file_safely",
    "Symbol",
    "SymbolTable",
]
