# src/models/__init__.py

from .users import *
from .locations import *
from .catalog import *
from .inventory import *
from .ecommerce import *
# import every model file here
