"""Strict encoding runtime: codec plans, the codec driver and the dataclass front-end."""

from .driver import decode as decode
from .driver import encode as encode
from .errors import *
from .plan import CodecPlan as CodecPlan
from .plan import StructPlan as StructPlan
from .plan import UnionPlan as UnionPlan
from .registry import Registry as Registry
from .registry import compile as compile
from .serialization import default_registry as default_registry
from .serialization import strict_deserialize as strict_deserialize
from .serialization import strict_field as strict_field
from .serialization import strict_serialize as strict_serialize
from .serialization import strict_struct as strict_struct
from .serialization import strict_union as strict_union
from .serialization import strict_variant as strict_variant
from .types import *
from .values import Record as Record
from .values import Variant as Variant
