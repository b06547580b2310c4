from . import cert, node

__all__ = ['cert', 'node']
