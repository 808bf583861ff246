# Configuration submodule
from .layout import StatementLayout
from .registry import LayoutRegistry

__all__ = ['StatementLayout', 'LayoutRegistry']
