from .result import OperationResult as OperationResult

__all__ = ["OperationResult"]
