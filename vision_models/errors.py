"""
Exceptions raised by the model wrappers.

Both classes derive from ValueError so callers that already treat bad
configuration as ValueError keep working.
"""


class ModelStructureError(ValueError):
    """The network does not match what the wrapper expects.

    Raised once, at setup time: wrong number of inputs or outputs, wrong
    tensor rank or channel count, or an anchor count that disagrees with
    the number of proposals the network declares. A wrapper that raised
    this must not be used for inference.
    """


class TensorShapeError(ValueError):
    """An output tensor handed to postprocessing has an unexpected shape."""
