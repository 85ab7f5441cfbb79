"""Declaration-to-descriptor compiler."""

from .descriptors import *
from .errors import *
from .expand import Expansion as Expansion
from .expand import compile_item as compile_item
from .expand import compile_source as compile_source
from .expand import pyclass as pyclass
from .expand import pyfunction as pyfunction
from .expand import pymethods as pymethods
from .parser import parse as parse
from .parser import parse_item as parse_item
