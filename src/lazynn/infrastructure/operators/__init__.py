"""
Lazy operator building functions.

Importing this package registers every built-in operator with the operator
table (the submodules register on import).
"""

from ._operator import OpDef, Operator, get_operator, make_operator, register_operator
from ._broadcast import collapse, duplicate, interpolate
from ._elementwise import (
    absolute,
    add,
    divide,
    exp,
    multiply,
    negative,
    sigmoid,
    sigmoid_grad,
    subtract,
    tanh,
    tanh_grad,
)
