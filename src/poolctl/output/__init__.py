"""
输出
表格、描述模板与结构化输出
"""

from .formatting import (
    describe_machine_pool,
    describe_node_pool,
    dump,
    machine_pools_table,
    node_pool_document,
    node_pools_table,
)
from .renderer import create_jinja_env, render_template

__all__ = [
    'describe_machine_pool',
    'describe_node_pool',
    'dump',
    'machine_pools_table',
    'node_pool_document',
    'node_pools_table',
    'create_jinja_env',
    'render_template',
]
