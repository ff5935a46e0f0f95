"""strictenc schema language, code generator and tooling."""

from .parser import ValidationError as ValidationError
from .parser import load as load
from .parser import parse as parse
from .parser import parse_type as parse_type
from .parser import validate as validate
from .sizes import SizeCalculator as SizeCalculator
from .sizes import SizeInfo as SizeInfo
from .sizes import SizeKind as SizeKind
from .sizes import calculate_sizes as calculate_sizes
from .types import *
from .values import from_json as from_json
from .values import to_json as to_json
