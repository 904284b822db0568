"""
核心模块初始化
导出基础类型与错误
"""

from .types import (
    Topology, NetworkMode, ClusterState, FlagSource, TaintEffect,
    OutputFormat, RuleStage, MACHINE_POOL_NAME_RE,
)

from .errors import (
    PoolError, FlagConflictError, InputFormatError, PromptAborted,
    ApiError, CloudError,
)

__all__ = [
    # 类型
    'Topology', 'NetworkMode', 'ClusterState', 'FlagSource', 'TaintEffect',
    'OutputFormat', 'RuleStage', 'MACHINE_POOL_NAME_RE',

    # 错误
    'PoolError', 'FlagConflictError', 'InputFormatError', 'PromptAborted',
    'ApiError', 'CloudError',
]
