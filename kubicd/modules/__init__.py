"""
Cluster management modules.
"""
from .executor import ExecResult, RemoteExecutor, SaltExecutor, TargetType

__all__ = [
    'ExecResult',
    'RemoteExecutor',
    'SaltExecutor',
    'TargetType',
]
