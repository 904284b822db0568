"""
外部客户端
控制平面 (httpx) 与云 SDK (boto3)
"""

from .base import (
    ControlPlaneAPI, CloudAPI,
    MachineType, MachineTypeList, SubnetInfo, SecurityGroupInfo,
)
from .ocm import ControlPlaneClient
from .aws import CloudClient

__all__ = [
    'ControlPlaneAPI', 'CloudAPI',
    'MachineType', 'MachineTypeList', 'SubnetInfo', 'SecurityGroupInfo',
    'ControlPlaneClient', 'CloudClient',
]
