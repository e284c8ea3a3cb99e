"""Error kinds raised by the SAC components."""


class ConstructionError(ValueError):
    """Invalid or missing component/argument at object creation."""


class InputShapeError(ValueError):
    """Tensor shapes passed to a call do not match the configured dimensions."""


class NumericalError(ArithmeticError):
    """A loss became NaN/Inf before an optimizer step."""
