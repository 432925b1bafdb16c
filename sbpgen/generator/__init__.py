"""sbpgen message binding generator."""

from .catalog import Catalog as Catalog
from .catalog import load as load
from .parser import load_file as load_file
from .parser import load_files as load_files
from .parser import parse as parse
from .resolver import ResolvedType as ResolvedType
from .resolver import parse_type as parse_type
from .resolver import resolve as resolve
from .sizes import CatalogSizeInfo as CatalogSizeInfo
from .sizes import SizeCalculator as SizeCalculator
from .sizes import SizeInfo as SizeInfo
from .sizes import SizeKind as SizeKind
from .sizes import calculate_sizes as calculate_sizes
from .synthesizer import Codec as Codec
from .synthesizer import Step as Step
from .synthesizer import synthesize as synthesize
from .types import *
