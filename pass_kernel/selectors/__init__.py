"""Read-only query selectors."""

from pass_kernel.selectors.allowance_selector import AllowanceSelector
from pass_kernel.selectors.base import BaseSelector
from pass_kernel.selectors.pass_selector import PassSelector

__all__ = [
    "AllowanceSelector",
    "BaseSelector",
    "PassSelector",
]
