"""默认值与常量"""

# 控制平面
API_DEFAULT_URL = "https://api.openshift.com"
API_DEFAULT_TIMEOUT_SECONDS = 30.0
CLUSTERS_MGMT_PATH = "/api/clusters_mgmt/v1"

# 创建机器池的默认参数
DEFAULT_INSTANCE_TYPE = "m5.xlarge"
DEFAULT_MULTI_AVAILABILITY_ZONE = True
DEFAULT_AUTOREPAIR = True
DEFAULT_AUTOSCALING = False
DEFAULT_REPLICAS = 0
DEFAULT_ROOT_DISK_SIZE_GIB = 300

# 附加安全组所需的最低版本
MIN_VERSION_COMPUTE_SECURITY_GROUPS_DAY2 = "4.11.0"
MIN_VERSION_HOSTED_SECURITY_GROUPS_DAY2 = "4.15.0"
# 托管控制平面支持的最低版本
LOWEST_HOSTED_CP_SUPPORT = "4.12.0"
# 托管机器池最多落后控制平面的次版本数
HOSTED_MACHINE_POOL_MINOR_SKEW = 2

# 根磁盘大小 (GiB)
ROOT_DISK_MIN_GIB = 128
ROOT_DISK_MAX_GIB_LEGACY = 1024
ROOT_DISK_MAX_GIB = 16384
ROOT_DISK_LARGE_SIZE_VERSION = "4.14.0"

# 节点驱逐宽限期上限：一周
NODE_DRAIN_GRACE_PERIOD_MAX_MINUTES = 10080

# 特殊的 spot 价格取值，表示按需价格上限
SPOT_ON_DEMAND = "on-demand"

# 本地区域类型
LOCAL_ZONE_TYPE = "local-zone"

STABLE_CHANNEL_GROUP = "stable"
VERSION_ID_PREFIX = "openshift-v"

# 集群级 KubeletConfig 的 PID 上限范围
MIN_POD_PIDS_LIMIT = 4096
MAX_POD_PIDS_LIMIT = 16384
