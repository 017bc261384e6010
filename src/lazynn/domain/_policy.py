"""
Layer capability policy.

`LayerPolicy` carries the two construction-time capability switches of a
layer:

- ``feedback_output``: whether `feed_backward` is supported at all. Layers
  without it are backward-transparent (inference-only): they never buffer
  forward state and `feed_backward` returns an empty bundle with no side
  effects.
- ``update``: whether the layer owns parameters an external optimizer may
  mutate. Their gradients are collected by the backward pass, so collection
  only happens on layers that also have ``feedback_output``.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class LayerPolicy:
    """
    Immutable capability flags of a layer.

    Attributes
    ----------
    feedback_output : bool
        Enable the backward pass.
    update : bool
        Mark owned parameters as updatable and collect their gradients
        during the backward pass.
    """

    feedback_output: bool = False
    update: bool = False

    @property
    def backward_enabled(self) -> bool:
        """True if `feed_backward` does any work."""
        return self.feedback_output
