from ._arithmetic import ExpressionArithmeticMixin

__all__ = [ExpressionArithmeticMixin.__name__]
