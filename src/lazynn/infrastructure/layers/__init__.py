"""
Layers with stack-based reverse-mode bookkeeping.

Importing this package registers every built-in layer with the layer registry
used by `layer_from_config`.
"""

from ._layer_io import LAYER_INPUT, LAYER_OUTPUT, LayerIO
from ._shape_checker import ShapeChecker
from ._layer import Layer, LayerStack
from ._layer_config import layer_from_config, layer_to_config, register_layer
from ._activation_layers import NegativeLayer, SigmoidLayer, TanhLayer
from ._binary_layers import AddLayer, ElementMulLayer
from ._bias_layer import BiasLayer
from ._interpolate_layer import InterpolateLayer
from ._compose_layer import ComposeLayer, ComposeTopology
